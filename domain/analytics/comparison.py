"""Quotation comparison analytics: pure functions, zero external dependencies.

Only stdlib and domain imports allowed.
"""

from domain.models import (
    MaterialComparison,
    MaterialOffer,
    ProcessSummary,
    QuotationRanking,
    SectionSummary,
    SheetSummary,
    SupplierTotal,
)
from domain.pricing import price_from

DEFAULT_SHEET = "Hoja"


def _sort_key(value):
    return value if value is not None else float("inf")


def baseline_totals(baselines):
    """Return (total quantity, total cost) of the baseline."""
    quantity = 0.0
    cost = 0.0
    for item in baselines:
        quantity += item.quantity or 0.0
        cost += price_from(item.unit_price, item.quantity, item.total_price) or 0.0
    return quantity, cost


def best_offer(offers):
    """Cheapest offer with a positive normalized price, or None."""
    priced = [offer for offer in offers if offer.normalized_price is not None and offer.normalized_price > 0]
    if not priced:
        return None
    return min(priced, key=lambda offer: offer.normalized_price)


def build_material_comparison(baselines, quotations, items):
    """Per baseline item, every quotation's matched offer, cheapest first."""
    by_key = {}
    for item in items:
        if item.baseline_item_id is None:
            continue
        by_key.setdefault((item.quotation_id, item.baseline_item_id), item)

    comparison = []
    for base in baselines:
        offers = []
        for quotation in quotations:
            match = by_key.get((quotation.id, base.id))
            if match is None:
                continue
            offers.append(
                MaterialOffer(
                    quotation_id=quotation.id,
                    supplier=quotation.display_name,
                    currency=match.currency or quotation.currency,
                    unit_price=match.unit_price,
                    normalized_price=match.normalized_price,
                    total_price=match.total_price,
                    quantity=match.quantity,
                    match_score=match.match_score,
                    row_order=match.source_row,
                    offered_description=match.offered_description,
                )
            )
        offers.sort(key=lambda offer: _sort_key(offer.normalized_price))
        comparison.append(
            MaterialComparison(
                baseline_id=base.id,
                description=base.description,
                sheet_name=base.sheet_name or DEFAULT_SHEET,
                section_path=list(base.section_path),
                item_code=base.item_code,
                unit=base.unit,
                base_quantity=base.quantity,
                base_unit_price=base.unit_price,
                base_total_price=base.total_price,
                offers=offers,
                best_offer=best_offer(offers),
            )
        )
    return comparison


def rank_quotations(baselines, quotations, items, baseline_cost):
    """Rank quotations by normalized total, cheapest first; rank 0 wins."""
    matched = {}
    for item in items:
        if item.baseline_item_id is not None:
            matched.setdefault(item.quotation_id, set()).add(item.baseline_item_id)

    baseline_count = len(baselines)
    rows = []
    for quotation in quotations:
        normalized = quotation.total_amount_base
        items_matched = len(matched.get(quotation.id, ()))
        diff_amount = normalized - baseline_cost if normalized is not None and baseline_cost else None
        diff_pct = diff_amount / baseline_cost if diff_amount is not None else None
        rows.append(
            {
                "quotation_id": quotation.id,
                "supplier": quotation.display_name,
                "currency": quotation.currency,
                "total_amount": quotation.total_amount,
                "normalized_amount": normalized,
                "items_matched": items_matched,
                "missing": max(0, baseline_count - items_matched),
                "coverage_pct": items_matched / baseline_count if baseline_count else 0.0,
                "diff_amount": diff_amount,
                "diff_pct": diff_pct,
            }
        )
    rows.sort(key=lambda row: _sort_key(row["normalized_amount"]))
    return [QuotationRanking(rank=position, **row) for position, row in enumerate(rows)]


class _Aggregate:
    def __init__(self, sheet_name, section_path=None):
        self.sheet_name = sheet_name
        self.section_path = section_path
        self.base_total = 0.0
        self.suppliers = {}

    def add(self, total, offer=None):
        if offer is None:
            self.base_total += total
            return
        entry = self.suppliers.setdefault(offer.quotation_id, [offer.supplier, 0.0])
        entry[1] += total

    def supplier_totals(self):
        return [
            SupplierTotal(quotation_id=quotation_id, supplier=supplier, total=total)
            for quotation_id, (supplier, total) in self.suppliers.items()
        ]


def summarize_sections(comparison):
    """Baseline and per-supplier totals by section and by sheet."""
    sections = {}
    sheets = {}
    for material in comparison:
        sheet = sheets.setdefault(material.sheet_name, _Aggregate(material.sheet_name))
        key = (material.sheet_name, tuple(material.section_path))
        section = sections.setdefault(key, _Aggregate(material.sheet_name, list(material.section_path)))

        base_total = price_from(material.base_unit_price, material.base_quantity, material.base_total_price)
        if base_total:
            sheet.add(base_total)
            section.add(base_total)
        for offer in material.offers:
            offer_total = price_from(offer.unit_price, offer.quantity, offer.total_price)
            if offer_total:
                sheet.add(offer_total, offer)
                section.add(offer_total, offer)

    section_summaries = [
        SectionSummary(
            sheet_name=agg.sheet_name,
            section_path=agg.section_path,
            base_total=agg.base_total,
            suppliers=agg.supplier_totals(),
        )
        for agg in sections.values()
    ]
    sheet_summaries = [
        SheetSummary(sheet_name=agg.sheet_name, base_total=agg.base_total, suppliers=agg.supplier_totals())
        for agg in sheets.values()
    ]
    return section_summaries, sheet_summaries


def build_process_summary(process, baselines, quotations, items):
    """Assemble the full comparison of a process from persisted rows."""
    quantity, cost = baseline_totals(baselines)
    comparison = build_material_comparison(baselines, quotations, items)
    rankings = rank_quotations(baselines, quotations, items, cost)
    section_summaries, sheet_summaries = summarize_sections(comparison)
    return ProcessSummary(
        process=process,
        baseline_quantity=quantity,
        baseline_cost=cost,
        rankings=rankings,
        material_comparison=comparison,
        section_summaries=section_summaries,
        sheet_summaries=sheet_summaries,
        winner_id=rankings[0].quotation_id if rankings else None,
    )
