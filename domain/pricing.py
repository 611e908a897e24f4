"""Quotation item pricing: pure functions, zero external dependencies.

Only stdlib and domain imports allowed.

Import and manual edits both go through ``line_totals``/``quotation_totals``
so a quotation's stored totals always equal the sum over its items.
"""

from __future__ import annotations

import math

from domain.exceptions import ValidationError
from domain.models import ImportTotals, QuotationItem
from domain.units import convert_currency, convert_quantity, convert_unit_price


def _finite(value):
    return value is not None and not isinstance(value, bool) and math.isfinite(value)


def price_from(unit_price, quantity, fallback=None):
    """Explicit total when present, else unit price x quantity, else None."""
    if _finite(fallback):
        return fallback
    if _finite(unit_price) and _finite(quantity):
        return unit_price * quantity
    return None


def build_quotation_item(row, match, baseline, quote_currency, base_currency, rate, quotation_id=None):
    """Turn a parsed supplier row into a QuotationItem.

    The unit price (and the supplier quantity) are expressed in the matched
    baseline's unit when the units are convertible; the normalized price is
    that unit price in the process base currency.
    """
    supplier_quantity = row.quantity if _finite(row.quantity) else None
    unit_price = row.unit_price if _finite(row.unit_price) else None
    converted = False

    if baseline is not None and baseline.unit and row.unit:
        if unit_price:
            price_result = convert_unit_price(unit_price, row.unit, baseline.unit)
            if price_result.converted:
                unit_price = price_result.value
                converted = True
        if supplier_quantity is not None:
            quantity_result = convert_quantity(supplier_quantity, row.unit, baseline.unit)
            if quantity_result.converted:
                supplier_quantity = quantity_result.value
                converted = True

    baseline_quantity = baseline.quantity if baseline is not None else None
    quantity = supplier_quantity if supplier_quantity is not None else baseline_quantity

    return QuotationItem(
        quotation_id=quotation_id,
        baseline_item_id=match.baseline_id,
        material_id=baseline.material_id if baseline is not None else None,
        item_code=row.item_code,
        description=row.description,
        offered_description=row.offered_description,
        brand=row.brand,
        sheet_name=row.sheet_name,
        source_row=row.row_number,
        unit=(baseline.unit if baseline is not None and baseline.unit else None) or row.unit,
        original_unit=row.unit,
        unit_converted=converted,
        quantity=quantity,
        unit_price=unit_price,
        total_price=row.total_price if _finite(row.total_price) else None,
        currency=quote_currency,
        normalized_price=convert_currency(unit_price, quote_currency, base_currency, rate),
        match_score=match.score,
    )


def line_totals(item, base_currency, rate, default_currency=None):
    """Return (raw total in the item currency, total in the base currency)."""
    currency = item.currency or default_currency
    raw = price_from(item.unit_price, item.quantity, item.total_price)
    if raw is None:
        return None, None
    normalized = convert_currency(raw, currency, base_currency, rate)
    if normalized is None and _finite(item.unit_price) and _finite(item.quantity):
        unit = convert_currency(item.unit_price, currency, base_currency, rate)
        normalized = unit * item.quantity if unit is not None else None
    return raw, normalized


def quotation_totals(items, currency, base_currency, rate):
    """Sum the line totals of every item of a quotation.

    ``normalized_amount`` is None as soon as one priced line cannot be
    expressed in the base currency; ``unconverted`` counts those lines.
    """
    amount = 0.0
    normalized_amount = 0.0
    unconverted = 0
    for item in items:
        raw, normalized = line_totals(item, base_currency, rate, default_currency=currency)
        if raw is None:
            continue
        amount += raw
        if normalized is None:
            unconverted += 1
        else:
            normalized_amount += normalized
    return ImportTotals(
        currency=currency,
        amount=amount,
        base_currency=base_currency,
        normalized_amount=None if unconverted else normalized_amount,
        unconverted=unconverted,
    )


def manual_item_values(baseline_quantity, unit_price=None, total_price=None, quantity=None):
    """Resolve (quantity, unit_price, total_price) for a manually entered offer.

    A positive ``quantity`` wins over the baseline quantity. At least one of
    unit or total price is required; a missing unit price is derived from
    the total.
    """
    if _finite(quantity) and quantity > 0:
        resolved_quantity = quantity
    else:
        resolved_quantity = baseline_quantity if _finite(baseline_quantity) else None

    has_unit = _finite(unit_price)
    has_total = _finite(total_price)
    if not has_unit and not has_total:
        raise ValidationError("A unit price or a total price is required")

    total = total_price if has_total else None
    if total is None and resolved_quantity:
        total = unit_price * resolved_quantity
    if total is None and (not resolved_quantity or resolved_quantity <= 0):
        raise ValidationError("A quantity is required to compute the total")

    final_quantity = resolved_quantity if resolved_quantity else 1.0
    if has_unit:
        final_unit = unit_price
    else:
        final_unit = total / final_quantity
    return final_quantity, final_unit, total
