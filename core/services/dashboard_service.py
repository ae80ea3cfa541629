"""
Dashboard summary for the current tenant.

Read-only counters over the tenant's billing data. Revenue is the sum of
invoice totals, returned in major units like every other outbound amount.
"""

import logging
from decimal import Decimal

from pydantic import BaseModel

from clients.postgres_client import PostgresClient
from core.money import to_major_decimal
from utils.tenant_context import get_current_tenant_id

logger = logging.getLogger(__name__)


class DashboardSummary(BaseModel):
    """Counts and revenue shown on the dashboard."""

    invoices: int
    quotes: int
    purchase_invoices: int
    clients: int
    total_revenue: Decimal


class DashboardService:
    """Service for dashboard aggregates."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def summary(self) -> DashboardSummary:
        row = self.postgres.execute_single(
            """
            SELECT
                (SELECT COUNT(*) FROM invoices WHERE user_id = %(user_id)s) AS invoices,
                (SELECT COUNT(*) FROM quotes WHERE user_id = %(user_id)s) AS quotes,
                (SELECT COUNT(*) FROM purchase_invoices WHERE user_id = %(user_id)s) AS purchase_invoices,
                (SELECT COUNT(*) FROM clients WHERE user_id = %(user_id)s) AS clients,
                (SELECT COALESCE(SUM(total_cents), 0) FROM invoices WHERE user_id = %(user_id)s) AS revenue_cents
            """,
            {"user_id": get_current_tenant_id()}
        ) or {}

        return DashboardSummary(
            invoices=row.get("invoices", 0),
            quotes=row.get("quotes", 0),
            purchase_invoices=row.get("purchase_invoices", 0),
            clients=row.get("clients", 0),
            total_revenue=to_major_decimal(int(row.get("revenue_cents", 0))),
        )
