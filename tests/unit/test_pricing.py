"""Tests for domain.pricing and domain.purchasing."""

import pytest

from domain.exceptions import ValidationError
from domain.models import BaselineItem, MatchResult, QuotationItem, SupplierQuoteRow
from domain.pricing import build_quotation_item, line_totals, manual_item_values, price_from, quotation_totals
from domain.purchasing import build_order_number, order_line_total, order_suffix, pad_order_sequence


def _row(**overrides):
    values = dict(
        sheet_name="Cotizacion",
        row_number=7,
        description="Tubo PVC SAP 2 pulg",
        item_code="03.01",
        unit="m",
        quantity=30.0,
        unit_price=12.0,
        total_price=360.0,
    )
    values.update(overrides)
    return SupplierQuoteRow(**values)


def _baseline(**overrides):
    values = dict(
        id=11,
        sheet_name="Sanitarias",
        description="Tubo PVC SAP 2\"",
        unit="m",
        quantity=25.0,
        unit_price=10.0,
        material_id=4,
    )
    values.update(overrides)
    return BaselineItem(**values)


def _item(**overrides):
    values = dict(quotation_id=1, description="x", currency="PEN", unit_price=10.0, quantity=2.0)
    values.update(overrides)
    return QuotationItem(**values)


class TestPriceFrom:
    """Tests for price_from."""

    def test_explicit_total_wins(self):
        assert price_from(2.0, 3.0, 10.0) == 10.0

    def test_unit_times_quantity(self):
        assert price_from(2.0, 3.0) == 6.0

    def test_missing(self):
        assert price_from(None, 3.0) is None
        assert price_from(2.0, None, float("nan")) is None


class TestBuildQuotationItem:
    """Tests for build_quotation_item."""

    def test_matched_same_unit(self):
        item = build_quotation_item(_row(), MatchResult(score=0.8, baseline_id=11), _baseline(), "PEN", "PEN", None, 5)
        assert item.quotation_id == 5
        assert item.baseline_item_id == 11
        assert item.material_id == 4
        assert item.unit == "m"
        assert item.original_unit == "m"
        assert item.unit_converted is False
        assert item.quantity == 30.0
        assert item.normalized_price == 12.0
        assert item.match_score == 0.8
        assert item.source_row == 7

    def test_converts_price_and_quantity_to_baseline_unit(self):
        row = _row(unit="cm", unit_price=5.0, quantity=300.0, total_price=1500.0)
        item = build_quotation_item(row, MatchResult(score=1.0, baseline_id=11), _baseline(), "PEN", "PEN", None)
        assert item.unit_converted is True
        assert item.unit == "m"
        assert item.original_unit == "cm"
        assert item.unit_price == pytest.approx(500.0)
        assert item.quantity == pytest.approx(3.0)
        assert item.unit_price * item.quantity == pytest.approx(item.total_price)

    def test_currency_normalized(self):
        item = build_quotation_item(_row(), MatchResult(score=1.0, baseline_id=11), _baseline(), "USD", "PEN", 3.7)
        assert item.currency == "USD"
        assert item.normalized_price == pytest.approx(44.4)

    def test_missing_rate_leaves_normalized_empty(self):
        item = build_quotation_item(_row(), MatchResult(score=1.0, baseline_id=11), _baseline(), "USD", "PEN", None)
        assert item.normalized_price is None

    def test_unmatched_row_kept(self):
        item = build_quotation_item(_row(unit="und"), MatchResult(score=0.2), None, "PEN", "PEN", None)
        assert item.baseline_item_id is None
        assert item.unit == "und"
        assert item.quantity == 30.0

    def test_quantity_falls_back_to_baseline(self):
        item = build_quotation_item(
            _row(quantity=None), MatchResult(score=1.0, baseline_id=11), _baseline(), "PEN", "PEN", None
        )
        assert item.quantity == 25.0


class TestTotals:
    """Tests for line_totals and quotation_totals."""

    def test_line_in_foreign_currency(self):
        raw, normalized = line_totals(_item(currency="USD"), "PEN", 3.7)
        assert raw == 20.0
        assert normalized == pytest.approx(74.0)

    def test_line_without_rate(self):
        assert line_totals(_item(currency="USD"), "PEN", None) == (20.0, None)

    def test_line_uses_explicit_total(self):
        assert line_totals(_item(total_price=25.0), "PEN", None) == (25.0, 25.0)

    def test_line_without_price(self):
        assert line_totals(_item(unit_price=None), "PEN", None) == (None, None)

    def test_default_currency(self):
        raw, normalized = line_totals(_item(currency=None), "PEN", 3.7, default_currency="USD")
        assert normalized == pytest.approx(74.0)

    def test_quotation_totals_sum_items(self):
        items = [_item(), _item(unit_price=5.0, quantity=4.0), _item(unit_price=None)]
        totals = quotation_totals(items, "PEN", "PEN", None)
        assert totals.amount == 40.0
        assert totals.normalized_amount == 40.0
        assert totals.currency == "PEN"

    def test_unconvertible_line_voids_normalized_total(self):
        items = [_item(), _item(currency="USD", unit_price=100.0, quantity=10.0)]
        totals = quotation_totals(items, "USD", "PEN", None)
        assert totals.amount == 1020.0
        assert totals.normalized_amount is None
        assert totals.unconverted == 1

    def test_unpriced_lines_are_not_counted_as_unconverted(self):
        totals = quotation_totals([_item(currency="USD", unit_price=None)], "USD", "PEN", None)
        assert totals.normalized_amount == 0.0
        assert totals.unconverted == 0


class TestManualItemValues:
    """Tests for manual_item_values."""

    def test_unit_price_uses_baseline_quantity(self):
        assert manual_item_values(10.0, unit_price=5.0) == (10.0, 5.0, 50.0)

    def test_total_derives_unit_price(self):
        assert manual_item_values(10.0, total_price=80.0) == (10.0, 8.0, 80.0)

    def test_explicit_quantity_wins(self):
        assert manual_item_values(10.0, unit_price=5.0, quantity=4.0) == (4.0, 5.0, 20.0)

    def test_non_positive_quantity_ignored(self):
        assert manual_item_values(10.0, unit_price=5.0, quantity=0) == (10.0, 5.0, 50.0)

    def test_total_without_quantity(self):
        assert manual_item_values(None, total_price=80.0) == (1.0, 80.0, 80.0)

    def test_price_required(self):
        with pytest.raises(ValidationError):
            manual_item_values(10.0)

    def test_quantity_required_for_unit_price(self):
        with pytest.raises(ValidationError):
            manual_item_values(None, unit_price=5.0)


class TestPurchasing:
    """Tests for purchase order numbering helpers."""

    def test_pad(self):
        assert pad_order_sequence(7) == "007"
        assert pad_order_sequence(1234) == "1234"

    def test_suffix(self):
        assert order_suffix("007/2024-OBRA") == "/2024-OBRA"
        assert order_suffix("007-A") == "-A"
        assert order_suffix("12") == ""
        assert order_suffix(None) == ""

    def test_build_number_keeps_template_suffix(self):
        assert build_order_number(8, "007/2024") == "008/2024"
        assert build_order_number(1) == "001"

    def test_line_total(self):
        assert order_line_total(3, 2.5) == 7.5
        assert order_line_total(3, 2.5, 9.0) == 9.0
        assert order_line_total(None, 2.5) is None
