"""Tax rate domain models.

Rates are percentages (18 = 18%) kept as exact Decimals. A rate is either
split into cgst + sgst or carried whole as igst; see core.money.validate_tax_split.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class TaxRateCreate(BaseModel):
    """Data required to create a tax rate."""

    name: str = Field(..., min_length=1, max_length=255)
    hsn_sac_code: str | None = Field(None, max_length=50)
    description: str | None = Field(None, max_length=1000)
    gst: Decimal = Field(..., ge=0, le=100, max_digits=5, decimal_places=2)
    cgst: Decimal | None = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)
    sgst: Decimal | None = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)
    igst: Decimal | None = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)


class TaxRateUpdate(BaseModel):
    """Tax rate fields that can change. Only sent fields are applied."""

    name: str | None = Field(None, min_length=1, max_length=255)
    hsn_sac_code: str | None = Field(None, max_length=50)
    description: str | None = Field(None, max_length=1000)
    gst: Decimal | None = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)
    cgst: Decimal | None = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)
    sgst: Decimal | None = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)
    igst: Decimal | None = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)


class TaxRate(BaseModel):
    """Full tax rate as stored."""

    id: UUID
    user_id: UUID
    name: str
    hsn_sac_code: str | None
    description: str | None
    gst: Decimal
    cgst: Decimal | None
    sgst: Decimal | None
    igst: Decimal | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
