"""Quotation reports -- pandas views over domain summaries.

Domain-pure equivalents: domain.analytics.comparison (build_process_summary)
and domain.analytics.progress (compute_purchase_progress). This module only
reshapes their results into DataFrames, JSON payloads and Excel sheets.
"""

from dataclasses import asdict

import pandas as pd

from domain.quotation_service import process_cache_prefix

SUMMARY_TTL = 900

COMPARISON_BASE_COLUMNS = [
    "baseline_id", "sheet_name", "section", "item_code", "description", "unit",
    "base_quantity", "base_unit_price", "base_total_price", "best_supplier", "best_price",
]


def comparison_frame(summary) -> pd.DataFrame:
    """One row per baseline item, one column per supplier (normalized unit price)."""
    records = []
    offers = []
    for material in summary.material_comparison:
        best = material.best_offer
        records.append({
            "baseline_id": material.baseline_id,
            "sheet_name": material.sheet_name,
            "section": " > ".join(material.section_path),
            "item_code": material.item_code,
            "description": material.description,
            "unit": material.unit,
            "base_quantity": material.base_quantity,
            "base_unit_price": material.base_unit_price,
            "base_total_price": material.base_total_price,
            "best_supplier": best.supplier if best else None,
            "best_price": best.normalized_price if best else None,
        })
        for offer in material.offers:
            offers.append({
                "baseline_id": material.baseline_id,
                "supplier": offer.supplier,
                "normalized_price": offer.normalized_price,
            })

    df = pd.DataFrame(records, columns=COMPARISON_BASE_COLUMNS)
    if not offers:
        return df
    matrix = (
        pd.DataFrame(offers)
        .pivot_table(index="baseline_id", columns="supplier", values="normalized_price", aggfunc="min")
        .reset_index()
    )
    matrix.columns.name = None
    return df.merge(matrix, on="baseline_id", how="left")


def rankings_frame(summary) -> pd.DataFrame:
    columns = [
        "rank", "quotation_id", "supplier", "currency", "total_amount", "normalized_amount",
        "items_matched", "missing", "coverage_pct", "diff_amount", "diff_pct",
    ]
    df = pd.DataFrame([asdict(r) for r in summary.rankings], columns=columns)
    df["winner"] = df["quotation_id"] == summary.winner_id
    return df


def sections_frame(summary) -> pd.DataFrame:
    """Baseline vs supplier totals per section, suppliers as columns."""
    rows = []
    for section in summary.section_summaries:
        row = {
            "sheet_name": section.sheet_name,
            "section": " > ".join(section.section_path),
            "base_total": section.base_total,
        }
        for supplier_total in section.suppliers:
            row[supplier_total.supplier] = supplier_total.total
        rows.append(row)
    return pd.DataFrame(rows)


def progress_frame(rows) -> pd.DataFrame:
    columns = [
        "key", "description", "unit", "baseline_ids", "sheet_names", "required", "ordered",
        "received", "order_pct", "receive_pct", "pending_order", "pending_receive",
    ]
    df = pd.DataFrame([asdict(r) for r in rows], columns=columns)
    df["baseline_ids"] = df["baseline_ids"].apply(lambda ids: ", ".join(str(i) for i in ids))
    df["sheet_names"] = df["sheet_names"].apply(", ".join)
    return df


def _jsonable(df: pd.DataFrame) -> list[dict]:
    return df.astype(object).where(df.notna(), None).to_dict(orient="records")


def summary_payload(service, process_id: int, cache=None, ttl: int = SUMMARY_TTL) -> dict:
    """JSON-ready process summary, served from *cache* until a write invalidates it."""
    key = f"{process_cache_prefix(process_id)}:summary"
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            return cached

    summary = service.get_process_summary(process_id)
    payload = {
        "process": {
            "id": summary.process.id,
            "name": summary.process.name,
            "code": summary.process.code,
            "base_currency": summary.process.base_currency,
        },
        "baseline_quantity": summary.baseline_quantity,
        "baseline_cost": summary.baseline_cost,
        "winner_id": summary.winner_id,
        "rankings": _jsonable(rankings_frame(summary)),
        "sections": _jsonable(sections_frame(summary)),
        "materials": _jsonable(comparison_frame(summary)),
    }
    if cache is not None:
        cache.set(key, payload, ttl=ttl)
    return payload


def export_summary_excel(summary, progress_rows, path) -> None:
    """Write rankings, comparison matrix, sections and progress to an .xlsx file."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        rankings_frame(summary).to_excel(writer, sheet_name="Ranking", index=False)
        comparison_frame(summary).to_excel(writer, sheet_name="Comparativo", index=False)
        sections_frame(summary).to_excel(writer, sheet_name="Secciones", index=False)
        progress_frame(progress_rows).to_excel(writer, sheet_name="Avance", index=False)
