"""Core domain models."""

from core.models.document import (
    Document, DocumentCreate, DocumentUpdate, DocumentFilter, DocumentPage,
    DocumentKind, InvoiceStatus, QuoteStatus,
    LineItem, LineItemCreate,
)
from core.models.payload import (
    DocumentCreatePayload, DocumentUpdatePayload, LineItemPayload,
    DocumentView, LineItemView,
    ProductCreatePayload, ProductUpdatePayload, ProductView,
)
from core.models.product import Product, ProductCreate, ProductUpdate, ProductPage
from core.models.tax import TaxRate, TaxRateCreate, TaxRateUpdate

__all__ = [
    # Document
    "Document", "DocumentCreate", "DocumentUpdate", "DocumentFilter", "DocumentPage",
    "DocumentKind", "InvoiceStatus", "QuoteStatus",
    # LineItem
    "LineItem", "LineItemCreate",
    # Major-unit boundary
    "DocumentCreatePayload", "DocumentUpdatePayload", "LineItemPayload",
    "DocumentView", "LineItemView",
    "ProductCreatePayload", "ProductUpdatePayload", "ProductView",
    # Product
    "Product", "ProductCreate", "ProductUpdate", "ProductPage",
    # Tax
    "TaxRate", "TaxRateCreate", "TaxRateUpdate",
]
