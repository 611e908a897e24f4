"""Header detection and column resolution: pure functions, zero external dependencies.

Column resolution takes already-normalized header labels and a hint table
and returns ``{field: column_index}``; it holds no scan state, so every
scoring rule can be exercised on a plain list of strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from domain.extraction.cells import cell_text, row_has_numbers
from domain.normalization import normalize_label, normalize_name_for_match

PROVIDER_HEADER = re.compile(r"(COTIZ|PRECIO\s+DE\s+VENTA)")
SUPPLIER_HEADER_WINDOW = 40
SUPPLIER_COLUMN_SCAN_ROWS = 15
SOLES_COLUMN_SCAN_ROWS = 12
ADJACENT_TOTAL_SCAN_ROWS = 8

_USD = re.compile(r"USD|US\$|DOLAR")
_SOLES = re.compile(r"SOLES|S/|\bPEN\b")
_ITEM_CODE = re.compile(r"^\d+(\.\d+)*$")


@dataclass(frozen=True)
class HintRule:
    """Header hints for one field and how competing columns are scored."""

    hints: tuple[str, ...]
    prefer_estudio: bool = False
    prefer_rightmost: bool = False
    penalize_total: bool = False


BASELINE_HINTS = {
    "item_code": HintRule(("ITEM",)),
    "description": HintRule(("DESCRIPCION", "DESCRIPCION DE PARTIDAS")),
    "unit": HintRule(("UND", "UNID")),
    "quantity": HintRule(
        ("METRADO", "METRADO CANTIDAD", "CANTIDAD"),
        prefer_estudio=True,
        prefer_rightmost=True,
        penalize_total=True,
    ),
    "unit_price": HintRule(("COSTO UNITARIO", "PRECIO DE CONTRATO", "PRECIO PACTADO", "PRECIO UNITARIO")),
    "total_price": HintRule(
        ("VALOR TOTAL", "COSTO TOTAL", "TOTAL"),
        prefer_estudio=True,
        prefer_rightmost=True,
    ),
}

SUPPLIER_HINTS = {
    "item_code": ("ITEM", "CODIGO"),
    "description": (
        "ARTICULO LICITADO",
        "DESCRIPCION",
        "DESCRIPCION DE PARTIDAS",
        "ARTICULO",
        "PRODUCTO OFERTADO",
        "PRODUCTO",
        "DESCRIPCION SOLICITADA",
        "DESCRIPCION OFERTADA",
    ),
    "offered_description": ("ARTICULO OFERTADO",),
    "brand": ("MARCA", "PAIS"),
    "unit": ("UND", "U.M", "UNIDAD", "UM"),
    "quantity": ("METRADO", "METRADO CANTIDAD", "CANT"),
    "unit_price": (
        "PRECIO UNITARIO",
        "PRECIO",
        "COSTO UNITARIO",
        "COSTO",
        "PRECIO DE VENTA",
        "PRECIO PACTADO",
        "PRECIO DE CONTRATO",
        "SOLES",
        "P. UNITARIO",
    ),
    "total_price": ("SUB TOTAL", "SUBTOTAL", "TOTAL", "VALOR", "COSTO TOTAL"),
}

# total_price is scored against the unit_price column, so it must come after it.
SUPPLIER_FIELD_ORDER = (
    "item_code",
    "description",
    "offered_description",
    "brand",
    "unit",
    "quantity",
    "unit_price",
    "total_price",
)


@dataclass
class BaselineHeader:
    columns: dict[str, int]
    provider_columns: tuple[int, ...] = ()


@dataclass
class HeaderDetection:
    header: BaselineHeader
    span: int


@dataclass
class SupplierHeader:
    columns: dict[str, int] = field(default_factory=dict)
    row_index: int = 0


def mentions_soles(label):
    return bool(label) and _SOLES.search(label) is not None


def mentions_usd(label):
    return bool(label) and _USD.search(label) is not None


def label_has_hint(label, hint):
    """Substring match; hints of three characters or fewer must be whole words."""
    if not label:
        return False
    if len(hint) <= 3:
        return re.search(rf"(?<![A-Z0-9]){re.escape(hint)}(?![A-Z0-9])", label) is not None
    return hint in label


def label_matches(label, hints):
    return any(label_has_hint(label, hint) for hint in hints)


def combine_headers(row_a, row_b=None):
    """Per-column ``UPPER::LOWER`` labels of one or two header rows."""
    upper = list(row_a or [])
    lower = list(row_b or [])
    labels = []
    for idx in range(max(len(upper), len(lower))):
        parts = [
            normalize_label(cell_text(row[idx])) if idx < len(row) else ""
            for row in (upper, lower)
        ]
        labels.append("::".join(part for part in parts if part))
    return labels


def header_continuation(row):
    """The next row only counts as the lower header half when it holds no numbers.

    A row with an item-code cell such as ``01`` or ``02.01`` is data (usually the
    first section heading), not a header.
    """
    if not row or row_has_numbers(row):
        return None
    if any(_ITEM_CODE.match(cell_text(cell)) for cell in row):
        return None
    return row


def score_label(label, rule):
    score = 0
    if rule.prefer_estudio:
        if "ESTUDIO DEFINITIVO" in label:
            score += 10
        elif "ESTUDIO" in label:
            score += 6
        elif "CONTRACTUAL" in label:
            score += 3
    if rule.penalize_total and "TOTAL" in label:
        score -= 8
    if "PRECIO DE VENTA" in label or "DIFERENCIA" in label:
        score -= 6
    return score


def find_best_column(labels, rule):
    """Best-scoring column for a rule; ties go right or left per the rule."""
    candidates = [idx for idx, label in enumerate(labels) if label_matches(label, rule.hints)]
    if not candidates:
        return None
    direction = 1 if rule.prefer_rightmost else -1
    return max(candidates, key=lambda idx: (score_label(labels[idx], rule), direction * idx))


def resolve_columns(labels, hint_table):
    """Map each field of ``hint_table`` to its best column in ``labels``."""
    columns = {}
    for field_name, rule in hint_table.items():
        idx = find_best_column(labels, rule)
        if idx is not None:
            columns[field_name] = idx
    return columns


def find_first_column(labels, hints):
    for idx, label in enumerate(labels):
        if label_matches(label, hints):
            return idx
    return None


# ── Baseline ────────────────────────────────────────────────────────────


def detect_baseline_header_from_labels(labels):
    """Header map for combined labels, or None if description/item hints are missing."""
    if not any(label_matches(label, BASELINE_HINTS["description"].hints) for label in labels):
        return None
    if not any(label_matches(label, BASELINE_HINTS["item_code"].hints) for label in labels):
        return None
    columns = resolve_columns(labels, BASELINE_HINTS)
    if "description" not in columns:
        return None
    quantity = columns.get("quantity")
    if (
        quantity is not None
        and quantity + 1 < len(labels)
        and "ESTUDIO" in labels[quantity]
        and "TOTAL" in labels[quantity + 1]
    ):
        columns["total_price"] = quantity + 1
    provider_columns = tuple(idx for idx, label in enumerate(labels) if PROVIDER_HEADER.search(label))
    return BaselineHeader(columns=columns, provider_columns=provider_columns)


def detect_baseline_header(rows, index):
    """Try a two-row header at ``index``, then the single row. None if neither has a quantity column."""
    if index >= len(rows) or not rows[index]:
        return None
    current = rows[index]
    following = header_continuation(rows[index + 1]) if index + 1 < len(rows) else None
    if following is not None:
        header = detect_baseline_header_from_labels(combine_headers(current, following))
        if header is not None and "quantity" in header.columns:
            return HeaderDetection(header=header, span=2)
    header = detect_baseline_header_from_labels(combine_headers(current))
    if header is not None and "quantity" in header.columns:
        return HeaderDetection(header=header, span=1)
    return None


# ── Supplier ────────────────────────────────────────────────────────────


def preferred_unit_price_column(labels):
    candidates = [idx for idx, label in enumerate(labels) if label_matches(label, SUPPLIER_HINTS["unit_price"])]
    if not candidates:
        return None
    without_total = [idx for idx in candidates if "TOTAL" not in labels[idx]]
    candidates = without_total or candidates

    def score(idx):
        label = labels[idx]
        previous = labels[idx - 1] if idx > 0 else ""
        following = labels[idx + 1] if idx + 1 < len(labels) else ""
        value = 0.0
        if re.search(r"PRECIO|UNIT", label):
            value += 3
        if mentions_soles(label):
            value += 4
        if mentions_soles(previous):
            value += 2
        if mentions_soles(following):
            value += 3
        if "TOTAL" in label:
            value -= 5
        return value + idx * 0.01

    return max(candidates, key=score)


def preferred_total_price_column(labels, unit_price_idx=None):
    candidates = [idx for idx, label in enumerate(labels) if label_matches(label, SUPPLIER_HINTS["total_price"])]
    if not candidates:
        return None

    def score(idx):
        label = labels[idx]
        value = 0.0
        if mentions_soles(label):
            value += 6
        if mentions_usd(label):
            value -= 5
        if unit_price_idx is not None:
            distance = idx - unit_price_idx
            if distance >= 0:
                value += 3
            if distance == 1:
                value += 2
            value -= abs(distance) * 0.05
        return value + idx * 0.01

    return max(candidates, key=score)


def detect_supplier_header(rows, start=0, window=SUPPLIER_HEADER_WINDOW):
    """Accumulate supplier columns over a window of rows starting at ``start``.

    Returns once a description column plus a unit-price or total-price
    column are known; ``row_index`` is the row that completed the header.
    """
    found = {}
    end = min(len(rows), start + window)
    for idx in range(start, end):
        row = rows[idx]
        if not row or not any(cell_text(cell) for cell in row):
            continue
        following = header_continuation(rows[idx + 1]) if idx + 1 < len(rows) else None
        labels = combine_headers(row, following)
        for key in SUPPLIER_FIELD_ORDER:
            if key in found:
                continue
            if key == "unit_price":
                column = preferred_unit_price_column(labels)
            elif key == "total_price":
                column = preferred_total_price_column(labels, found.get("unit_price"))
            else:
                column = find_first_column(labels, SUPPLIER_HINTS[key])
            if column is not None:
                found[key] = column
        if "description" in found and ("unit_price" in found or "total_price" in found):
            last = idx + 1 if following is not None else idx
            return SupplierHeader(columns=found, row_index=last)
    return None


def find_supplier_header(rows):
    """Slide the detection window down the sheet until a header appears."""
    for start in range(len(rows)):
        header = detect_supplier_header(rows, start=start)
        if header is not None:
            return header
    return None


def find_supplier_column(rows, supplier_name):
    """Column whose early cells mention the supplier most often."""
    target = normalize_name_for_match(supplier_name)
    if not target:
        return None
    hits = {}
    for row in rows[:SUPPLIER_COLUMN_SCAN_ROWS]:
        for idx, cell in enumerate(row or ()):
            if target in normalize_name_for_match(cell_text(cell)):
                hits[idx] = hits.get(idx, 0) + 1
    if not hits:
        return None
    return max(hits, key=lambda idx: (hits[idx], -idx))


def _label_at(rows, row_idx, col_idx):
    row = rows[row_idx] or ()
    return normalize_label(cell_text(row[col_idx])) if col_idx < len(row) else ""


def find_soles_column(rows, base_index):
    """Shift a USD price column to the SOLES column just right of it."""
    if base_index is None:
        return None
    for row_idx in range(min(len(rows), SOLES_COLUMN_SCAN_ROWS)):
        current = _label_at(rows, row_idx, base_index)
        above = _label_at(rows, row_idx - 1, base_index) if row_idx > 0 else ""
        following = _label_at(rows, row_idx, base_index + 1)
        if (mentions_usd(current) or mentions_usd(above)) and mentions_soles(following):
            return base_index + 1
    return None


def find_adjacent_total_column(rows, unit_col):
    for row_idx in range(min(len(rows), ADJACENT_TOTAL_SCAN_ROWS)):
        label = _label_at(rows, row_idx, unit_col + 1)
        if label and ("TOTAL" in label or "SOLES" in label):
            return unit_col + 1
    return None
