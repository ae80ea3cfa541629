"""
Domain events for billing documents.

Immutable records of what happened, published after the transaction that
produced them has committed. Events carry the full document so handlers
never re-read state that may not be visible yet.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class BillingEvent:
    """Base class for all billing events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass(frozen=True)
class DocumentCreated(BillingEvent):
    """An invoice, quote or purchase invoice was created."""
    document: Any = None  # Document

    @classmethod
    def create(cls, document: Any) -> "DocumentCreated":
        return cls(document=document)


@dataclass(frozen=True)
class DocumentUpdated(BillingEvent):
    """A document header and/or its item set changed."""
    document: Any = None
    items_replaced: bool = False

    @classmethod
    def create(cls, document: Any, items_replaced: bool = False) -> "DocumentUpdated":
        return cls(document=document, items_replaced=items_replaced)


@dataclass(frozen=True)
class DocumentDeleted(BillingEvent):
    """A document and its items were deleted."""
    document: Any = None

    @classmethod
    def create(cls, document: Any) -> "DocumentDeleted":
        return cls(document=document)


@dataclass(frozen=True)
class DocumentStatusChanged(BillingEvent):
    """A document moved to a new status."""
    document: Any = None
    previous_status: str | None = None

    @classmethod
    def create(cls, document: Any, previous_status: str | None) -> "DocumentStatusChanged":
        return cls(document=document, previous_status=previous_status)


@dataclass(frozen=True)
class QuoteConverted(BillingEvent):
    """A quote was converted; the invoice references it."""
    quote_id: UUID | None = None
    invoice: Any = None

    @classmethod
    def create(cls, quote_id: UUID, invoice: Any) -> "QuoteConverted":
        return cls(quote_id=quote_id, invoice=invoice)
