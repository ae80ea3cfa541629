"""Run the billing API with uvicorn.

    BILLING_LOG_LEVEL=DEBUG python main.py
"""

import logging
import os

import uvicorn

from api.app import build_services, create_app
from auth.session import SessionResolver
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url
from core.config import BillingConfig


def build_app():
    logging.basicConfig(
        level=os.getenv("BILLING_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    postgres = PostgresClient(get_database_url())
    config = BillingConfig(
        allow_quote_reconversion=os.getenv("BILLING_ALLOW_QUOTE_RECONVERSION", "").lower() in ("1", "true", "yes"),
    )
    return create_app(build_services(postgres, config), SessionResolver(postgres))


if __name__ == "__main__":
    uvicorn.run(
        build_app(),
        host=os.getenv("BILLING_HOST", "127.0.0.1"),
        port=int(os.getenv("BILLING_PORT", "8000")),
    )
