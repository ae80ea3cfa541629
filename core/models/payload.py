"""Major-unit shapes that cross the API boundary.

Clients send and receive dollars (12.50); the core works in cents (1250).
Payloads convert in with to_minor_units(), views convert out with
to_major_units(). Nothing else does unit conversion.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from core.models.document import (
    Document,
    DocumentCreate,
    DocumentKind,
    DocumentUpdate,
    LineItem,
    LineItemCreate,
)
from core.models.product import Product, ProductCreate, ProductUpdate
from core.money import to_major_units, to_minor_units, to_minor_units_optional

Amount = int | float | Decimal


class LineItemPayload(BaseModel):
    """Line item as sent by clients, amounts in major units."""

    product_name: str = Field(..., min_length=1, max_length=255)
    product_description: str | None = None
    hsn_code: str | None = None
    price: Amount
    quantity: int | None = Field(None, ge=0)
    total_price: Amount
    taxable_amount: Amount = 0
    product_id: UUID | None = None
    tax_id: UUID | None = None

    def to_minor(self) -> LineItemCreate:
        return LineItemCreate(
            product_name=self.product_name,
            product_description=self.product_description,
            hsn_code=self.hsn_code,
            price_cents=to_minor_units(self.price),
            quantity=1 if self.quantity is None else self.quantity,
            total_price_cents=to_minor_units(self.total_price),
            taxable_amount_cents=to_minor_units(self.taxable_amount),
            product_id=self.product_id,
            tax_id=self.tax_id,
        )


class DocumentCreatePayload(BaseModel):
    """Create request in major units."""

    number: str
    issue_date: date
    due_date: date | None = None
    status: str | None = None
    sub_total: Amount
    discount: Amount = 0
    total_tax: Amount
    total: Amount
    notes: str | None = None
    gst: Decimal | None = None
    cgst: Decimal | None = None
    sgst: Decimal | None = None
    igst: Decimal | None = None
    client_id: UUID | None = None
    shipping_address_id: UUID | None = None
    seller_name: str | None = None
    seller_address: str | None = None
    items: list[LineItemPayload]

    def to_minor(self) -> DocumentCreate:
        data = self.model_dump(exclude={"sub_total", "discount", "total_tax", "total", "items"})
        return DocumentCreate(
            **data,
            sub_total_cents=to_minor_units(self.sub_total),
            discount_cents=to_minor_units(self.discount),
            total_tax_cents=to_minor_units(self.total_tax),
            total_cents=to_minor_units(self.total),
            items=[item.to_minor() for item in self.items],
        )


_AMOUNT_FIELDS = {
    "sub_total": "sub_total_cents",
    "discount": "discount_cents",
    "total_tax": "total_tax_cents",
    "total": "total_cents",
}


class DocumentUpdatePayload(BaseModel):
    """Partial update in major units. Absent fields stay absent after conversion."""

    number: str | None = None
    issue_date: date | None = None
    due_date: date | None = None
    status: str | None = None
    sub_total: Amount | None = None
    discount: Amount | None = None
    total_tax: Amount | None = None
    total: Amount | None = None
    notes: str | None = None
    gst: Decimal | None = None
    cgst: Decimal | None = None
    sgst: Decimal | None = None
    igst: Decimal | None = None
    client_id: UUID | None = None
    shipping_address_id: UUID | None = None
    seller_name: str | None = None
    seller_address: str | None = None
    items: list[LineItemPayload] | None = None

    def to_minor(self) -> DocumentUpdate:
        sent = self.model_dump(exclude_unset=True, exclude={"items"})
        data = {}
        for key, value in sent.items():
            if key in _AMOUNT_FIELDS:
                data[_AMOUNT_FIELDS[key]] = to_minor_units_optional(value)
            else:
                data[key] = value

        if "items" in self.model_fields_set:
            data["items"] = (
                None if self.items is None else [item.to_minor() for item in self.items]
            )

        # Passing only sent keys keeps model_fields_set equal to what the client sent
        return DocumentUpdate(**data)


class ProductCreatePayload(BaseModel):
    """Product create request, price in major units."""

    name: str
    description: str | None = None
    hsn_code: str | None = None
    price: Amount
    tax_id: UUID | None = None

    def to_minor(self) -> ProductCreate:
        return ProductCreate(
            **self.model_dump(exclude={"price"}),
            price_cents=to_minor_units(self.price),
        )


class ProductUpdatePayload(BaseModel):
    """Partial product update, price in major units."""

    name: str | None = None
    description: str | None = None
    hsn_code: str | None = None
    price: Amount | None = None
    tax_id: UUID | None = None

    def to_minor(self) -> ProductUpdate:
        data = self.model_dump(exclude_unset=True)
        if "price" in data:
            data["price_cents"] = to_minor_units_optional(data.pop("price"))
        return ProductUpdate(**data)


# =============================================================================
# READ PROJECTIONS
# =============================================================================


class LineItemView(BaseModel):
    """Line item in major units."""

    id: UUID
    product_name: str
    product_description: str | None
    hsn_code: str | None
    price: float
    quantity: int
    total_price: float
    taxable_amount: float
    product_id: UUID | None
    tax_id: UUID | None

    @classmethod
    def from_item(cls, item: LineItem) -> "LineItemView":
        return cls(
            id=item.id,
            product_name=item.product_name,
            product_description=item.product_description,
            hsn_code=item.hsn_code,
            price=to_major_units(item.price_cents),
            quantity=item.quantity,
            total_price=to_major_units(item.total_price_cents),
            taxable_amount=to_major_units(item.taxable_amount_cents),
            product_id=item.product_id,
            tax_id=item.tax_id,
        )


class DocumentView(BaseModel):
    """Document in major units, as returned to clients and exporters."""

    id: UUID
    kind: DocumentKind
    number: str
    issue_date: date
    due_date: date | None
    status: str | None
    sub_total: float
    discount: float
    total_tax: float
    total: float
    notes: str | None
    gst: Decimal | None
    cgst: Decimal | None
    sgst: Decimal | None
    igst: Decimal | None
    client_id: UUID | None
    shipping_address_id: UUID | None
    seller_name: str | None
    seller_address: str | None
    quote_id: UUID | None
    items_count: int
    items: list[LineItemView]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, document: Document) -> "DocumentView":
        return cls(
            id=document.id,
            kind=document.kind,
            number=document.number,
            issue_date=document.issue_date,
            due_date=document.due_date,
            status=document.status,
            sub_total=to_major_units(document.sub_total_cents),
            discount=to_major_units(document.discount_cents),
            total_tax=to_major_units(document.total_tax_cents),
            total=to_major_units(document.total_cents),
            notes=document.notes,
            gst=document.gst,
            cgst=document.cgst,
            sgst=document.sgst,
            igst=document.igst,
            client_id=document.client_id,
            shipping_address_id=document.shipping_address_id,
            seller_name=document.seller_name,
            seller_address=document.seller_address,
            quote_id=document.quote_id,
            items_count=len(document.items),
            items=[LineItemView.from_item(item) for item in document.items],
            created_at=document.created_at,
            updated_at=document.updated_at,
        )


class ProductView(BaseModel):
    """Product in major units."""

    id: UUID
    name: str
    description: str | None
    hsn_code: str | None
    price: float
    tax_id: UUID | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_product(cls, product: Product) -> "ProductView":
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            hsn_code=product.hsn_code,
            price=to_major_units(product.price_cents),
            tax_id=product.tax_id,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )
