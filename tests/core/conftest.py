"""Lightweight in-memory documents for core tests, no DB needed."""

import pytest
from datetime import date
from uuid import uuid4

from core.models import Document, DocumentKind, LineItem
from utils.timezone import now_utc


@pytest.fixture
def sample_document():
    """A stored-looking PENDING invoice with one line item."""
    now = now_utc()
    document_id = uuid4()
    user_id = uuid4()
    item = LineItem(
        id=uuid4(), document_id=document_id, user_id=user_id,
        product_name="Widget", price_cents=1000, quantity=2,
        total_price_cents=2000, taxable_amount_cents=200,
        created_at=now,
    )
    return Document(
        id=document_id, kind=DocumentKind.INVOICE, user_id=user_id,
        number="INV-001", issue_date=date(2024, 3, 1), due_date=date(2024, 3, 31),
        status="PENDING",
        sub_total_cents=1800, discount_cents=0, total_tax_cents=200, total_cents=2000,
        created_at=now, updated_at=now,
        items=[item],
    )
