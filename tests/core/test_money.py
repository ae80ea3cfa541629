"""Tests for integer-cent money handling and document reconciliation."""

import pytest
from decimal import Decimal

from core.errors import (
    LineItemMismatch,
    MinorUnitConversionError,
    TaxSplitMismatch,
    TotalsMismatch,
)
from core.models import LineItemCreate
from core.money import (
    compute_totals,
    MAX_MINOR_UNITS,
    to_major_decimal,
    to_major_units,
    to_minor_units,
    to_minor_units_optional,
    validate_document_totals,
    validate_line_item,
    validate_line_items,
    validate_tax_split,
)


def item(price, quantity, total, tax=0, name="Widget"):
    return LineItemCreate(
        product_name=name, price_cents=price, quantity=quantity,
        total_price_cents=total, taxable_amount_cents=tax,
    )


# =============================================================================
# UNIT CONVERSION
# =============================================================================


class TestToMinorUnits:

    @pytest.mark.parametrize("amount, cents", [
        (12.5, 1250),
        (0.29, 29),
        (0.1, 10),
        (19.99, 1999),
        (100, 10000),
        (Decimal("10.05"), 1005),
        ("7.30", 730),
        (-4.2, -420),
        (0, 0),
    ])
    def test_exact_amounts(self, amount, cents):
        assert to_minor_units(amount) == cents

    def test_float_sums_do_not_drift(self):
        """0.1 + 0.2 as separate conversions adds up to exactly 30 cents."""
        assert to_minor_units(0.1) + to_minor_units(0.2) == 30

    @pytest.mark.parametrize("amount", [10.005, "1.234", Decimal("0.001")])
    def test_sub_cent_precision_rejected(self, amount):
        with pytest.raises(MinorUnitConversionError, match="more precise than one cent"):
            to_minor_units(amount)

    def test_float_noise_rejected(self):
        """A computation artifact is not silently rounded."""
        with pytest.raises(MinorUnitConversionError):
            to_minor_units(19.999999999999996)

    @pytest.mark.parametrize("amount", [10**17, -(10**17), 1e300, "92233720368547758.08"])
    def test_amount_beyond_bigint_rejected(self, amount):
        """Cents must fit the BIGINT amount columns."""
        with pytest.raises(MinorUnitConversionError, match="too large"):
            to_minor_units(amount)

    def test_largest_storable_amount_accepted(self):
        assert to_minor_units("92233720368547758.07") == MAX_MINOR_UNITS

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), Decimal("Infinity")])
    def test_non_finite_rejected(self, amount):
        with pytest.raises(MinorUnitConversionError, match="finite"):
            to_minor_units(amount)

    @pytest.mark.parametrize("amount", ["abc", True, None, [1]])
    def test_non_numeric_rejected(self, amount):
        with pytest.raises(MinorUnitConversionError):
            to_minor_units(amount)

    def test_error_is_a_validation_failure(self):
        with pytest.raises(MinorUnitConversionError) as exc_info:
            to_minor_units("abc")

        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "ARITHMETIC_ERROR"

    def test_optional_passes_none(self):
        assert to_minor_units_optional(None) is None
        assert to_minor_units_optional(0) == 0


class TestToMajorUnits:

    def test_returns_major_unit_number(self):
        assert to_major_units(1250) == 12.5
        assert to_major_units(5) == 0.05
        assert to_major_units(-420) == -4.2

    @pytest.mark.parametrize("amount", [0.29, 19.99, 0.1, 12.34, 7.3, -4.2, 0.0, 1234567.89])
    def test_float_round_trip(self, amount):
        """Dollars in, cents stored, the same dollars out."""
        assert to_major_units(to_minor_units(amount)) == amount

    @pytest.mark.parametrize("amount", [Decimal("0.29"), Decimal("19.99"), "12.34", "7.3", 100])
    def test_round_trip_keeps_value(self, amount):
        assert to_major_units(to_minor_units(amount)) == float(amount)

    def test_exact_decimal_variant(self):
        assert to_major_decimal(1250) == Decimal("12.50")
        assert str(to_major_decimal(5)) == "0.05"
        assert to_major_decimal(-420) == Decimal("-4.20")

    @pytest.mark.parametrize("value", [12.5, "1250", True])
    def test_rejects_non_int(self, value):
        with pytest.raises(TypeError):
            to_major_units(value)


# =============================================================================
# LINE ITEMS
# =============================================================================


class TestLineItems:

    def test_matching_item_passes(self):
        validate_line_item(item(1000, 2, 2000))

    def test_mismatch_names_product_and_amounts(self):
        with pytest.raises(LineItemMismatch) as exc_info:
            validate_line_item(item(1000, 2, 1999, name="Gadget"))

        error = exc_info.value
        assert error.product_name == "Gadget"
        assert error.expected == 2000
        assert error.provided == 1999
        assert "Gadget" in error.message

    def test_quantity_none_counts_as_one(self):
        class Priced:
            product_name = "Service"
            price_cents = 500
            quantity = None
            total_price_cents = 500
            taxable_amount_cents = 0

        validate_line_item(Priced())

    def test_zero_quantity_means_zero_total(self):
        validate_line_item(item(1000, 0, 0))

    def test_stops_at_first_mismatch(self):
        with pytest.raises(LineItemMismatch) as exc_info:
            validate_line_items([
                item(100, 1, 100, name="A"),
                item(100, 2, 199, name="B"),
                item(100, 3, 1, name="C"),
            ])

        assert exc_info.value.product_name == "B"


# =============================================================================
# DOCUMENT TOTALS
# =============================================================================


class TestDocumentTotals:

    def test_compute_totals(self):
        totals = compute_totals([item(1000, 2, 2000, tax=200), item(550, 1, 550, tax=50)], discount=100)

        assert totals.sub_total == 2300
        assert totals.total_tax == 250
        assert totals.total == 2450

    def test_valid_document(self):
        totals = validate_document_totals(
            [item(1000, 2, 2000, tax=200)], sub_total=1800, total_tax=200, total=2000,
        )

        assert totals.total == 2000

    def test_total_mismatch(self):
        with pytest.raises(TotalsMismatch) as exc_info:
            validate_document_totals(
                [item(1000, 2, 2000, tax=200)], sub_total=1800, total_tax=200, total=1900,
            )

        assert exc_info.value.field == "total"
        assert exc_info.value.expected == 2000
        assert exc_info.value.provided == 1900

    def test_check_order_is_sub_total_tax_total(self):
        with pytest.raises(TotalsMismatch) as exc_info:
            validate_document_totals(
                [item(1000, 2, 2000, tax=200)], sub_total=1800, total_tax=100, total=1900,
            )

        assert exc_info.value.field == "totalTax"

    def test_omitted_aggregates_not_checked(self):
        validate_document_totals([item(1000, 2, 2000, tax=200)], total=2000)

    def test_one_cent_off_is_rejected(self):
        with pytest.raises(TotalsMismatch):
            validate_document_totals([item(1000, 2, 2000, tax=200)], sub_total=1801)

    def test_discount_applied(self):
        validate_document_totals([item(1000, 2, 2000, tax=200)], total=1500, discount=500)


# =============================================================================
# TAX SPLIT
# =============================================================================


class TestTaxSplit:

    def test_cgst_plus_sgst_equals_gst(self):
        validate_tax_split(Decimal("18"), Decimal("9"), Decimal("9"))

    def test_fractional_rates_compare_exactly(self):
        validate_tax_split(Decimal("5"), Decimal("2.5"), Decimal("2.5"))

    def test_split_mismatch(self):
        with pytest.raises(TaxSplitMismatch) as exc_info:
            validate_tax_split(Decimal("18"), Decimal("9"), Decimal("8"))

        assert exc_info.value.message == "Gst does not match."
        assert len(exc_info.value.reasons) == 1

    def test_igst_must_equal_gst(self):
        validate_tax_split(Decimal("12"), igst=Decimal("12"))
        with pytest.raises(TaxSplitMismatch):
            validate_tax_split(Decimal("12"), igst=Decimal("18"))

    def test_split_without_gst_rejected(self):
        with pytest.raises(TaxSplitMismatch):
            validate_tax_split(None, Decimal("9"), Decimal("9"))

    def test_nothing_to_check(self):
        validate_tax_split(None)
        validate_tax_split(Decimal("18"), cgst=Decimal("9"))
