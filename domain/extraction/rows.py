"""Row classification for baseline sheets: pure functions, zero external dependencies.

Each predicate looks at one row in isolation so the heuristics can be tuned
without touching the reader loop.
"""

import re

from domain.extraction.cells import cell_number, cell_str, cell_text, is_finite_number, row_has_numbers
from domain.normalization import normalize_label

MAX_SECTION_DEPTH = 4

_FP_SHEET = re.compile(r"^FP[\s-]")
_SUB_TOTAL = re.compile(r"^SUB[- ]?TOTAL")


def should_skip_sheet(sheet_name):
    """Summary/overhead sheets that never hold budget lines."""
    normalized = (sheet_name or "").strip().upper()
    if not normalized:
        return False
    if "RESUMEN" in normalized:
        return True
    if normalized.startswith(("RES-", "RES ", "RES_")):
        return True
    if _FP_SHEET.match(normalized):
        return True
    return normalized == "RG" or normalized.startswith("GG")


def is_provider_name_row(row, provider_columns):
    """A row naming the supplier of each provider-quote column.

    It has text in at least one provider column and no numeric cell at all.
    Sparse sheets can trip this, which is why it lives on its own.
    """
    if not provider_columns:
        return False
    has_text = any(len(cell_text(row[idx] if idx < len(row) else None)) > 1 for idx in provider_columns)
    return has_text and not row_has_numbers(row)


def is_summary_description(description):
    """SUB TOTAL / TOTAL lines that restate sums of the lines above."""
    if not description:
        return False
    normalized = normalize_label(description)
    if _SUB_TOTAL.match(normalized):
        return True
    if normalized.startswith("TOTAL ") or normalized == "TOTAL":
        return True
    return any(
        marker in normalized
        for marker in ("TOTAL SUMINISTRO", "TOTAL ESTUDIO", "TOTAL PROVEDOR", "TOTAL PROVEEDOR")
    )


def is_section_row(row, columns):
    """Described row without quantity, unit price or total: a section heading."""
    if not cell_str(row, columns.get("description")):
        return False
    numbers = (
        cell_number(row, columns.get("quantity")),
        cell_number(row, columns.get("unit_price")),
        cell_number(row, columns.get("total_price")),
    )
    return not any(is_finite_number(value) for value in numbers)


def update_section_path(current, label):
    """Push a section label, truncating to an existing ancestor of the same name."""
    clean = re.sub(r":+$", "", (label or "").strip()).strip()
    if not clean:
        return list(current)
    if clean in current:
        return list(current[: current.index(clean) + 1])
    updated = [*current, clean]
    return updated[-MAX_SECTION_DEPTH:]
