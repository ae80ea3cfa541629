"""Tests for VaultClient and database URL lookup."""

from unittest.mock import MagicMock, patch

import pytest
from hvac.exceptions import InvalidPath

import clients.vault_client as vault_module
from clients.vault_client import (
    VaultClient,
    database_configured,
    get_admin_database_url,
    get_database_url,
)

VAULT_ENV = ("VAULT_ADDR", "VAULT_ROLE_ID", "VAULT_SECRET_ID", "VAULT_NAMESPACE")
DB_ENV = ("DATABASE_URL", "DATABASE_ADMIN_URL")


@pytest.fixture
def clean_env(monkeypatch):
    """No Vault or database settings, and no cached secrets."""
    for name in VAULT_ENV + DB_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(vault_module, "_vault_client_instance", None)
    monkeypatch.setattr(vault_module, "_secret_cache", {})


@pytest.fixture
def vault_env(clean_env, monkeypatch):
    monkeypatch.setenv("VAULT_ADDR", "https://vault.test:8200")
    monkeypatch.setenv("VAULT_ROLE_ID", "role")
    monkeypatch.setenv("VAULT_SECRET_ID", "secret")


@pytest.fixture
def hvac_client():
    """Patched hvac.Client that authenticates."""
    with patch("clients.vault_client.hvac.Client") as client_cls:
        client = MagicMock()
        client.auth.approle.login.return_value = {"auth": {"client_token": "t0ken"}}
        client.is_authenticated.return_value = True
        client_cls.return_value = client
        yield client


class TestVaultClientInit:

    def test_missing_vault_addr_raises(self, clean_env):
        with pytest.raises(ValueError, match="VAULT_ADDR"):
            VaultClient()

    def test_missing_approle_credentials_raises(self, clean_env, monkeypatch):
        monkeypatch.setenv("VAULT_ADDR", "https://vault.test:8200")

        with pytest.raises(ValueError, match="VAULT_ROLE_ID"):
            VaultClient()

    def test_failed_login_raises_permission_error(self, vault_env, hvac_client):
        hvac_client.auth.approle.login.side_effect = RuntimeError("denied")

        with pytest.raises(PermissionError, match="authentication"):
            VaultClient()

    def test_valid_approle_authenticates(self, vault_env, hvac_client):
        client = VaultClient()

        assert client.client.token == "t0ken"


class TestGetSecret:

    def test_paths_scoped_to_billing(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {
            "data": {"data": {"url": "postgresql://vault/billing"}}
        }

        url = VaultClient().get_secret("database", "url")

        assert url == "postgresql://vault/billing"
        kwargs = hvac_client.secrets.kv.v2.read_secret_version.call_args.kwargs
        assert kwargs["path"] == "billing/database"

    def test_missing_path_raises(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath()

        with pytest.raises(PermissionError):
            VaultClient().get_secret("nonexistent", "field")

    def test_missing_field_raises_keyerror(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": {"url": "x"}}}

        with pytest.raises(KeyError, match="not found"):
            VaultClient().get_secret("database", "nonexistent_field")


class TestDatabaseUrls:

    def test_not_configured(self, clean_env):
        assert database_configured() is False

    def test_env_url_wins(self, clean_env, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://local/billing")

        assert database_configured() is True
        assert get_database_url() == "postgresql://local/billing"

    def test_admin_falls_back_to_database_url_without_vault(self, clean_env, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://local/billing")

        assert get_admin_database_url() == "postgresql://local/billing"

    def test_vault_secret_cached(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {
            "data": {"data": {"url": "postgresql://vault/billing"}}
        }

        assert get_database_url() == "postgresql://vault/billing"
        assert get_database_url() == "postgresql://vault/billing"
        assert hvac_client.secrets.kv.v2.read_secret_version.call_count == 1
