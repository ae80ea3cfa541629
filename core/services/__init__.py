"""Billing services."""

from core.services.dashboard_service import DashboardService, DashboardSummary
from core.services.document_service import DocumentService
from core.services.product_service import ProductService
from core.services.tax_service import TaxService

__all__ = [
    "DashboardService", "DashboardSummary",
    "DocumentService",
    "ProductService",
    "TaxService",
]
