"""
Document status machine.

Invoice:  PENDING -> PARTIALLY_PAID -> PAID      (PENDING -> PAID allowed)
Quote:    DRAFT -> ACCEPTED | DECLINED
          DRAFT | ACCEPTED -> CONVERTED_TO_INVOICE  (conversion only)
Purchase invoices have no status.

PAID, DECLINED and CONVERTED_TO_INVOICE are terminal.
"""

from core.errors import InvalidStatusTransition, QuoteAlreadyConverted
from core.models.document import DocumentKind, InvoiceStatus, QuoteStatus

_EXTERNAL_TRANSITIONS: dict[DocumentKind, dict[str, set[str]]] = {
    DocumentKind.INVOICE: {
        InvoiceStatus.PENDING.value: {InvoiceStatus.PARTIALLY_PAID.value, InvoiceStatus.PAID.value},
        InvoiceStatus.PARTIALLY_PAID.value: {InvoiceStatus.PAID.value},
        InvoiceStatus.PAID.value: set(),
    },
    DocumentKind.QUOTE: {
        QuoteStatus.DRAFT.value: {QuoteStatus.ACCEPTED.value, QuoteStatus.DECLINED.value},
        QuoteStatus.ACCEPTED.value: set(),
        QuoteStatus.DECLINED.value: set(),
        QuoteStatus.CONVERTED_TO_INVOICE.value: set(),
    },
}

CONVERTIBLE_QUOTE_STATUSES = {QuoteStatus.DRAFT.value, QuoteStatus.ACCEPTED.value}


def _parse(kind: DocumentKind, status) -> str:
    try:
        return kind.parse_status(status)
    except ValueError as e:
        raise InvalidStatusTransition(kind.value, None, str(status), str(e))


def initial_status(kind: DocumentKind, requested=None) -> str | None:
    """
    Status for a new document.

    Defaults to the kind's initial state. A caller may record any status of
    the kind except CONVERTED_TO_INVOICE, which only conversion produces.
    """
    if kind.status_enum is None:
        if requested is not None:
            raise InvalidStatusTransition(
                kind.value, None, str(requested), f"{kind.label} has no status"
            )
        return None

    if requested is None:
        return kind.initial_status

    status = _parse(kind, requested)
    if status == QuoteStatus.CONVERTED_TO_INVOICE.value:
        raise InvalidStatusTransition(
            kind.value, None, status,
            "CONVERTED_TO_INVOICE is set only by converting the quote",
        )
    return status


def check_transition(kind: DocumentKind, current: str | None, requested) -> str:
    """
    Validate an externally triggered status change.

    Returns:
        The normalized target status. Equal to current for a no-op.

    Raises:
        InvalidStatusTransition
    """
    if kind.status_enum is None:
        raise InvalidStatusTransition(
            kind.value, current, str(requested), f"{kind.label} has no status"
        )

    target = _parse(kind, requested)
    if target == current:
        return target

    allowed = _EXTERNAL_TRANSITIONS[kind].get(current, set())
    if target not in allowed:
        raise InvalidStatusTransition(kind.value, current, target)
    return target


def check_convertible(quote_id, status: str, allow_reconversion: bool = False) -> None:
    """
    Guard for quote -> invoice conversion.

    Raises:
        QuoteAlreadyConverted: quote was converted before and re-conversion is off
        InvalidStatusTransition: quote is DECLINED
    """
    if status == QuoteStatus.CONVERTED_TO_INVOICE.value:
        if allow_reconversion:
            return
        raise QuoteAlreadyConverted(quote_id)

    if status not in CONVERTIBLE_QUOTE_STATUSES:
        raise InvalidStatusTransition(
            DocumentKind.QUOTE.value, status, QuoteStatus.CONVERTED_TO_INVOICE.value,
            f"Quote {quote_id} is {status} and cannot be converted",
        )
