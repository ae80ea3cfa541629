"""Application assembly: services, middleware, error handlers and routes."""

import logging

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from auth.security_middleware import AuthMiddleware
from auth.session import SessionResolver
from clients.postgres_client import PostgresClient
from core.audit import AuditLogger
from core.config import BillingConfig
from core.event_bus import EventBus
from core.services import DashboardService, DocumentService, ProductService, TaxService

logger = logging.getLogger(__name__)


def build_services(
    postgres: PostgresClient,
    config: BillingConfig | None = None,
    event_bus: EventBus | None = None,
) -> dict:
    """Wire the billing services around one database client."""
    audit = AuditLogger(postgres)
    return {
        "document": DocumentService(postgres, audit, event_bus or EventBus(), config),
        "tax": TaxService(postgres, audit),
        "product": ProductService(postgres, audit, config),
        "dashboard": DashboardService(postgres),
    }


def create_app(services: dict, session_resolver: SessionResolver) -> FastAPI:
    """FastAPI app with auth middleware, error handlers, and data/actions routes."""
    app = FastAPI(title="Billing API")

    app.add_middleware(AuthMiddleware, session_resolver=session_resolver)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    logger.info("Billing API assembled")
    return app
