"""Product catalog models.

A product is a reusable line item template: name, HSN code, unit price in
cents and an optional tax rate. Line items copy these values when a
document is written, so editing a product never changes a saved document.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    """Data required to create a product, price in cents."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    hsn_code: str | None = Field(None, max_length=50)
    price_cents: int = Field(..., ge=0)
    tax_id: UUID | None = None


class ProductUpdate(BaseModel):
    """Product fields that can change. Only sent fields are applied."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    hsn_code: str | None = Field(None, max_length=50)
    price_cents: int | None = Field(None, ge=0)
    tax_id: UUID | None = None


class Product(BaseModel):
    """Full product as stored."""

    id: UUID
    user_id: UUID
    name: str
    description: str | None = None
    hsn_code: str | None = None
    price_cents: int
    tax_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProductPage(BaseModel):
    products: list[Product]
    page: int
    limit: int
    total_entries: int

    @property
    def total_pages(self) -> int:
        return -(-self.total_entries // self.limit) if self.limit else 0
