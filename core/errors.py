"""
Typed exceptions for billing failures.

Every error carries a machine-readable code, an HTTP status for the routing
layer, a human-readable message and a list of reasons. None of them are
retried by the core: validation errors are deterministic client-input
problems and storage failures belong to the caller's retry policy.
"""

from typing import Any


class BillingError(Exception):
    """Base class for all billing errors."""

    code = "BILLING_ERROR"
    status_code = 400

    def __init__(self, message: str, reasons: list[str] | None = None):
        self.message = message
        self.reasons = reasons if reasons is not None else [message]
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "reasons": self.reasons}


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationFailed(BillingError):
    """Client-supplied data violates a billing invariant. Resubmit corrected data."""

    code = "VALIDATION_FAILED"
    status_code = 400


class MinorUnitConversionError(ValidationFailed):
    """A major-unit amount does not map to a whole number of cents."""

    code = "ARITHMETIC_ERROR"

    def __init__(self, amount: Any, reason: str):
        self.amount = amount
        super().__init__(f"Amount {amount!r} cannot be stored in cents: {reason}")


class LineItemMismatch(ValidationFailed):
    """A line item's total price is not price * quantity."""

    code = "LINE_ITEM_MISMATCH"

    def __init__(self, product_name: str, expected: int, provided: int):
        self.product_name = product_name
        self.expected = expected
        self.provided = provided
        super().__init__(
            f"TotalPrice Mismatch for product {product_name}: "
            f"expected {expected}, provided {provided}"
        )


class TotalsMismatch(ValidationFailed):
    """A document aggregate (subTotal, totalTax or total) disagrees with its items."""

    code = "TOTALS_MISMATCH"

    def __init__(self, field: str, expected: int, provided: int):
        self.field = field
        self.expected = expected
        self.provided = provided
        super().__init__(
            f"{field} Mismatch: the provided {field} ({provided}) does not match "
            f"the calculated {field} ({expected})"
        )


class TaxSplitMismatch(ValidationFailed):
    """gst does not equal cgst + sgst, or igst does not equal gst."""

    code = "TAX_SPLIT_MISMATCH"


class InvalidStatusTransition(ValidationFailed):
    """Requested status change is not allowed from the current status."""

    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, kind: str, current: str | None, requested: str, reason: str | None = None):
        self.kind = kind
        self.current = current
        self.requested = requested
        message = reason or f"Cannot move {kind} from {current} to {requested}"
        super().__init__(message)


class QuoteAlreadyConverted(ValidationFailed):
    """Quote was already converted into an invoice."""

    code = "QUOTE_ALREADY_CONVERTED"

    def __init__(self, quote_id: Any):
        self.quote_id = quote_id
        super().__init__(f"Quote {quote_id} has already been converted to an invoice")


# =============================================================================
# RESOURCE ERRORS
# =============================================================================


class DuplicateDocumentNumber(BillingError):
    """Another document of the same kind already uses this number for the tenant."""

    code = "DUPLICATE_DOCUMENT_NUMBER"
    status_code = 409

    def __init__(self, kind: str, number: str):
        self.kind = kind
        self.number = number
        super().__init__(f"{kind} with number {number} already exists")


class NotFound(BillingError):
    """Entity does not exist or is not owned by the current tenant."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class DependencyConflict(BillingError):
    """Delete blocked because other rows still reference the entity."""

    code = "DEPENDENCY_CONFLICT"
    status_code = 403


# =============================================================================
# INFRASTRUCTURE
# =============================================================================


class StorageFailure(BillingError):
    """The store could not complete the transaction. Nothing was written."""

    code = "STORAGE_FAILURE"
    status_code = 500
