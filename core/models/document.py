"""Billing document domain models.

Invoices, quotes and purchase invoices share one shape, parameterized by
DocumentKind. All amounts are integer cents. Tax breakdown fields
(gst/cgst/sgst/igst) are percentage rates and stay unscaled.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class InvoiceStatus(str, Enum):
    """Invoice payment status."""

    PENDING = "PENDING"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"


class QuoteStatus(str, Enum):
    """Quote lifecycle status."""

    DRAFT = "DRAFT"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    CONVERTED_TO_INVOICE = "CONVERTED_TO_INVOICE"


class DocumentKind(str, Enum):
    """The three structurally parallel billing documents."""

    INVOICE = "invoice"
    QUOTE = "quote"
    PURCHASE_INVOICE = "purchase_invoice"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()

    @property
    def table(self) -> str:
        return f"{self.value}s"

    @property
    def items_table(self) -> str:
        return f"{self.value}_items"

    @property
    def status_enum(self) -> type[Enum] | None:
        return _STATUS_ENUMS[self]

    @property
    def initial_status(self) -> str | None:
        return _INITIAL_STATUS[self]

    @property
    def has_due_date(self) -> bool:
        return self is not DocumentKind.PURCHASE_INVOICE

    def parse_status(self, value: str | Enum | None) -> str | None:
        """Normalize a status for this kind. Raises ValueError for foreign values."""
        if value is None:
            return None
        raw = value.value if isinstance(value, Enum) else str(value)
        enum = self.status_enum
        if enum is None:
            raise ValueError(f"{self.label} has no status")
        try:
            return enum(raw.upper()).value
        except ValueError:
            valid = ", ".join(member.value for member in enum)
            raise ValueError(f"Invalid {self.value} status '{raw}'. Valid: {valid}")


_STATUS_ENUMS = {
    DocumentKind.INVOICE: InvoiceStatus,
    DocumentKind.QUOTE: QuoteStatus,
    DocumentKind.PURCHASE_INVOICE: None,
}

_INITIAL_STATUS = {
    DocumentKind.INVOICE: InvoiceStatus.PENDING.value,
    DocumentKind.QUOTE: QuoteStatus.DRAFT.value,
    DocumentKind.PURCHASE_INVOICE: None,
}


# =============================================================================
# LINE ITEMS
# =============================================================================


class LineItemCreate(BaseModel):
    """One priced entry on a document, in cents."""

    product_name: str = Field(..., min_length=1, max_length=255)
    product_description: str | None = Field(None, max_length=1000)
    hsn_code: str | None = Field(None, max_length=50)
    price_cents: int
    quantity: int = Field(1, ge=0)
    total_price_cents: int
    taxable_amount_cents: int = 0
    product_id: UUID | None = None
    tax_id: UUID | None = None


class LineItem(LineItemCreate):
    """Line item as stored."""

    id: UUID
    document_id: UUID
    user_id: UUID
    position: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# DOCUMENTS
# =============================================================================


class DocumentCreate(BaseModel):
    """
    Data required to create a document, in cents.

    All three aggregates are required on create; the ledger checks every one.
    """

    number: str = Field(..., min_length=1, max_length=100)
    issue_date: date
    due_date: date | None = None
    status: str | None = None
    sub_total_cents: int
    discount_cents: int = 0
    total_tax_cents: int
    total_cents: int
    notes: str | None = Field(None, max_length=2000)
    gst: Decimal | None = Field(None, max_digits=5, decimal_places=2)
    cgst: Decimal | None = Field(None, max_digits=5, decimal_places=2)
    sgst: Decimal | None = Field(None, max_digits=5, decimal_places=2)
    igst: Decimal | None = Field(None, max_digits=5, decimal_places=2)
    client_id: UUID | None = None
    shipping_address_id: UUID | None = None
    seller_name: str | None = Field(None, max_length=255)
    seller_address: str | None = Field(None, max_length=1000)
    items: list[LineItemCreate] = Field(..., min_length=1)


class DocumentUpdate(BaseModel):
    """
    Partial update. Only fields the client actually sent are applied.

    Presence is read from model_fields_set, so 0 and "" are real values and
    an omitted field keeps its stored value. Sending items replaces the
    whole item set.
    """

    number: str | None = Field(None, min_length=1, max_length=100)
    issue_date: date | None = None
    due_date: date | None = None
    status: str | None = None
    sub_total_cents: int | None = None
    discount_cents: int | None = None
    total_tax_cents: int | None = None
    total_cents: int | None = None
    notes: str | None = Field(None, max_length=2000)
    gst: Decimal | None = Field(None, max_digits=5, decimal_places=2)
    cgst: Decimal | None = Field(None, max_digits=5, decimal_places=2)
    sgst: Decimal | None = Field(None, max_digits=5, decimal_places=2)
    igst: Decimal | None = Field(None, max_digits=5, decimal_places=2)
    client_id: UUID | None = None
    shipping_address_id: UUID | None = None
    seller_name: str | None = Field(None, max_length=255)
    seller_address: str | None = Field(None, max_length=1000)
    items: list[LineItemCreate] | None = Field(None, min_length=1)

    def supplied(self) -> dict:
        """Header fields the client sent, excluding items."""
        return self.model_dump(exclude_unset=True, exclude={"items"})

    @property
    def items_supplied(self) -> bool:
        return "items" in self.model_fields_set


class Document(BaseModel):
    """Full document entity as stored, with its items when loaded."""

    id: UUID
    kind: DocumentKind
    user_id: UUID
    number: str
    issue_date: date
    due_date: date | None = None
    status: str | None = None
    sub_total_cents: int
    discount_cents: int
    total_tax_cents: int
    total_cents: int
    notes: str | None = None
    gst: Decimal | None = None
    cgst: Decimal | None = None
    sgst: Decimal | None = None
    igst: Decimal | None = None
    client_id: UUID | None = None
    shipping_address_id: UUID | None = None
    seller_name: str | None = None
    seller_address: str | None = None
    quote_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    items: list[LineItem] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class DocumentFilter(BaseModel):
    """List filters, mirroring the list endpoints' query parameters."""

    status: str | None = None
    client_id: UUID | None = None
    issue_date_from: date | None = None
    issue_date_to: date | None = None
    due_date_from: date | None = None
    due_date_to: date | None = None
    page: int = Field(1, ge=1)
    limit: int | None = Field(None, ge=1)


class DocumentPage(BaseModel):
    """One page of documents plus paging counters."""

    documents: list[Document]
    page: int
    limit: int
    total_entries: int

    @property
    def total_pages(self) -> int:
        return -(-self.total_entries // self.limit) if self.limit else 0
