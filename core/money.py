"""
Fixed-point money and billing-document reconciliation.

All amounts are stored and compared as integer cents. $12.50 = 1250 cents.
Conversion happens exactly once on each boundary crossing: to_minor_units()
when a client amount comes in, to_major_units() when an amount goes out for
display or export. Nothing in between ever touches a float.

Reconciliation rules for a document and its line items:

    item.total_price  == item.price * item.quantity
    doc.sub_total     == sum(item.total_price - item.taxable_amount)
    doc.total_tax     == sum(item.taxable_amount)
    doc.total         == doc.sub_total + doc.total_tax - doc.discount

Comparisons are strict integer equality. An off-by-one-cent client
computation is rejected, never corrected.

This module performs no I/O.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Iterable, NamedTuple, Protocol

from core.errors import (
    LineItemMismatch,
    MinorUnitConversionError,
    TaxSplitMismatch,
    TotalsMismatch,
)

CENTS_PER_UNIT = 100

# Amount columns are BIGINT
MAX_MINOR_UNITS = 2**63 - 1

SUB_TOTAL = "subTotal"
TOTAL_TAX = "totalTax"
TOTAL = "total"


class PricedItem(Protocol):
    """Anything shaped like a line item, in cents."""

    product_name: str
    price_cents: int
    quantity: int | None
    total_price_cents: int
    taxable_amount_cents: int


class LedgerTotals(NamedTuple):
    """Aggregates recomputed from a set of line items, in cents."""

    sub_total: int
    total_tax: int
    total: int


# =============================================================================
# UNIT CONVERSION
# =============================================================================


def _as_decimal(amount: int | float | Decimal | str) -> Decimal:
    if isinstance(amount, bool):
        raise MinorUnitConversionError(amount, "booleans are not amounts")

    if isinstance(amount, int):
        return Decimal(amount)

    if isinstance(amount, float):
        if not math.isfinite(amount):
            raise MinorUnitConversionError(amount, "amount must be finite")
        # repr() is the shortest string that round-trips, so 0.29 -> "0.29"
        # while a computation artifact such as 19.999999999999996 keeps its noise.
        return Decimal(repr(amount))

    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, str):
        try:
            value = Decimal(amount.strip())
        except InvalidOperation:
            raise MinorUnitConversionError(amount, "not a number")
    else:
        raise MinorUnitConversionError(amount, f"unsupported type {type(amount).__name__}")

    if not value.is_finite():
        raise MinorUnitConversionError(amount, "amount must be finite")
    return value


def to_minor_units(amount: int | float | Decimal | str) -> int:
    """
    Convert a major-unit amount (dollars) to integer cents.

    Raises:
        MinorUnitConversionError: amount is not finite, not numeric, has
            more precision than one cent (e.g. 10.005 or 19.999999999999996),
            or does not fit a BIGINT column once in cents.
    """
    scaled = _as_decimal(amount) * CENTS_PER_UNIT
    if scaled != scaled.to_integral_value():
        raise MinorUnitConversionError(amount, "more precise than one cent")
    if abs(scaled) > MAX_MINOR_UNITS:
        raise MinorUnitConversionError(amount, "amount is too large")
    return int(scaled)


def to_minor_units_optional(amount: int | float | Decimal | str | None) -> int | None:
    """to_minor_units() that passes None through. For partial updates."""
    if amount is None:
        return None
    return to_minor_units(amount)


def to_major_decimal(minor: int) -> Decimal:
    """
    Convert integer cents to an exact two-place Decimal.

    1250 -> Decimal("12.50"). No rounding is applied; cents are integers so
    the division is exact.
    """
    if isinstance(minor, bool) or not isinstance(minor, int):
        raise TypeError(f"Minor units must be int, got {type(minor).__name__}")
    return Decimal(minor).scaleb(-2)


def to_major_units(minor: int) -> float:
    """
    Convert integer cents to a major-unit number.

    The result is the float nearest the exact two-place value, so for any
    amount with at most two decimals to_major_units(to_minor_units(a)) == a.
    """
    return float(to_major_decimal(minor))


# =============================================================================
# RECONCILIATION
# =============================================================================


def _quantity(item: PricedItem) -> int:
    return 1 if item.quantity is None else item.quantity


def validate_line_item(item: PricedItem) -> None:
    """
    Check total_price == price * quantity. Quantity defaults to 1.

    Raises:
        LineItemMismatch: naming the product and both amounts.
    """
    expected = item.price_cents * _quantity(item)
    if expected != item.total_price_cents:
        raise LineItemMismatch(item.product_name, expected, item.total_price_cents)


def validate_line_items(items: Iterable[PricedItem]) -> None:
    """Validate every item, stopping at the first mismatch."""
    for item in items:
        validate_line_item(item)


def compute_totals(items: Iterable[PricedItem], discount: int = 0) -> LedgerTotals:
    """Recompute document aggregates from line items."""
    sub_total = 0
    total_tax = 0
    for item in items:
        sub_total += item.total_price_cents - item.taxable_amount_cents
        total_tax += item.taxable_amount_cents
    return LedgerTotals(sub_total, total_tax, sub_total + total_tax - discount)


def validate_document_totals(
    items: Iterable[PricedItem],
    *,
    sub_total: int | None = None,
    total_tax: int | None = None,
    total: int | None = None,
    discount: int = 0,
) -> LedgerTotals:
    """
    Compare the supplied aggregates against the ones computed from items.

    Only aggregates the caller actually supplied (not None) are checked. A
    partial update that omits total is not held to a total that was never
    sent. Checks run in order subTotal, totalTax, total.

    Returns:
        The recomputed totals.

    Raises:
        TotalsMismatch: identifying the first aggregate that disagrees.
    """
    computed = compute_totals(items, discount)

    for field, provided, expected in (
        (SUB_TOTAL, sub_total, computed.sub_total),
        (TOTAL_TAX, total_tax, computed.total_tax),
        (TOTAL, total, computed.total),
    ):
        if provided is not None and provided != expected:
            raise TotalsMismatch(field, expected, provided)

    return computed


def validate_tax_split(
    gst: Decimal | None,
    cgst: Decimal | None = None,
    sgst: Decimal | None = None,
    igst: Decimal | None = None,
) -> None:
    """
    Cross-field rule for the gst breakdown, applied identically everywhere.

    - cgst and sgst both present: cgst + sgst must equal gst
    - igst present: igst must equal gst

    Raises:
        TaxSplitMismatch
    """
    reasons = []

    if cgst is not None and sgst is not None:
        if gst is None or cgst + sgst != gst:
            reasons.append(f"cgst ({cgst}) + sgst ({sgst}) does not match gst ({gst})")

    if igst is not None and igst != gst:
        reasons.append(f"igst ({igst}) does not match gst ({gst})")

    if reasons:
        raise TaxSplitMismatch("Gst does not match.", reasons)
