"""Shared test fixtures for the billing test suite."""

import pytest
from uuid import UUID
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from utils.tenant_context import tenant_context, clear_current_tenant_id


# =============================================================================
# TEST TENANT CONSTANTS
# =============================================================================

# Primary test tenant - use for single-tenant tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_EMAIL = "testuser@test.local"

# Secondary test tenant - use for isolation tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")
TEST_USER_B_EMAIL = "testuser-b@test.local"


# =============================================================================
# TENANT CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_tenant_context():
    """Ensure clean tenant context before and after each test."""
    clear_current_tenant_id()
    yield
    clear_current_tenant_id()


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test tenant's ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> UUID:
    """The secondary test tenant's ID (for isolation tests)."""
    return TEST_USER_B_ID


@pytest.fixture
def as_test_user(test_user_id):
    """Run the test as the primary tenant."""
    with tenant_context(test_user_id):
        yield test_user_id


@pytest.fixture
def as_test_user_b(test_user_b_id):
    """Run the test as the secondary tenant."""
    with tenant_context(test_user_b_id):
        yield test_user_b_id


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def db():
    """Session-scoped PostgresClient (application role, RLS enforced).

    Skips when no database is configured, so the unit suite runs anywhere.
    """
    from clients.postgres_client import PostgresClient
    from clients.vault_client import database_configured, get_database_url

    if not database_configured():
        pytest.skip("No database configured (set DATABASE_URL or VAULT_ADDR)")

    client = PostgresClient(get_database_url())
    yield client
    client.close()


@pytest.fixture(scope="session")
def db_admin():
    """Session-scoped admin PostgresClient (bypasses RLS, for test setup/teardown)."""
    from clients.postgres_client import PostgresClient
    from clients.vault_client import database_configured, get_admin_database_url

    if not database_configured():
        pytest.skip("No database configured (set DATABASE_ADMIN_URL or VAULT_ADDR)")

    client = PostgresClient(get_admin_database_url())
    yield client
    client.close()


@pytest.fixture
def clean_db(db_admin):
    """Reset billing tables and make sure both test tenants exist."""
    schema = Path(__file__).parent.parent / "db" / "schema.sql"
    db_admin.execute(schema.read_text())

    # Truncate tenant-scoped tables (CASCADE handles foreign keys)
    db_admin.execute("""
        TRUNCATE
            invoice_items, quote_items, purchase_invoice_items,
            invoices, quotes, purchase_invoices,
            products, taxes, addresses, clients,
            user_sessions, audit_log
        CASCADE
    """)

    db_admin.execute("""
        INSERT INTO users (id, email, created_at, updated_at)
        VALUES
            (%s, %s, now(), now()),
            (%s, %s, now(), now())
        ON CONFLICT (id) DO UPDATE SET email = EXCLUDED.email
    """, (TEST_USER_ID, TEST_USER_EMAIL, TEST_USER_B_ID, TEST_USER_B_EMAIL))

    yield db_admin
