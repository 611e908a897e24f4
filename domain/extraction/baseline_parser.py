"""Baseline budget reader: pure functions over sheet grids.

Only stdlib and domain imports allowed.
"""

import logging

from domain.exceptions import ParseError
from domain.extraction.cells import (
    cell_number,
    cell_str,
    cell_text,
    description_value,
    has_letters,
    is_finite_number,
)
from domain.extraction.headers import detect_baseline_header
from domain.extraction.rows import (
    is_provider_name_row,
    is_section_row,
    is_summary_description,
    should_skip_sheet,
    update_section_path,
)
from domain.models import BaselineItem
from domain.normalization import normalize_code, normalize_label

logger = logging.getLogger(__name__)


def _provider_quotes(row, provider_columns, provider_names):
    quotes = {}
    for idx in provider_columns:
        value = cell_number(row, idx)
        if value is None:
            continue
        quotes[provider_names.get(idx) or f"Cotizacion {idx}"] = value
    return quotes


def parse_baseline_sheet(sheet_name, rows):
    """Return (header_found, items) for one worksheet."""
    header = None
    provider_names = {}
    section_path = []
    items = []
    idx = 0
    while idx < len(rows):
        row = rows[idx] or []
        if header is None:
            detection = detect_baseline_header(rows, idx)
            if detection is not None:
                header = detection.header
                idx += detection.span
            else:
                idx += 1
            continue

        idx += 1
        columns = header.columns

        if is_provider_name_row(row, header.provider_columns):
            for col in header.provider_columns:
                label = cell_text(row[col]) if col < len(row) else ""
                if label:
                    provider_names[col] = label
            continue

        if is_section_row(row, columns):
            label = description_value(row, columns.get("description"))
            if label and not is_summary_description(label):
                section_path = update_section_path(section_path, label)
            continue

        description = description_value(row, columns.get("description"))
        if not description or not has_letters(description):
            continue
        if "DESCRIPCION DE PARTIDAS" in normalize_label(description):
            continue
        if is_summary_description(description):
            continue

        quantity = cell_number(row, columns.get("quantity"))
        unit_price = cell_number(row, columns.get("unit_price"))
        total_price = cell_number(row, columns.get("total_price"))
        if total_price is None and is_finite_number(quantity) and is_finite_number(unit_price):
            total_price = quantity * unit_price
        if not any(is_finite_number(value) for value in (quantity, unit_price, total_price)):
            continue

        items.append(
            BaselineItem(
                sheet_name=sheet_name,
                row_number=idx,
                section_path=list(section_path),
                item_code=normalize_code(cell_str(row, columns.get("item_code"))),
                description=description,
                unit=cell_str(row, columns.get("unit")),
                quantity=quantity,
                unit_price=unit_price,
                total_price=total_price,
                provider_quotes=_provider_quotes(row, header.provider_columns, provider_names),
            )
        )
    return header is not None, items


def parse_baseline_workbook(sheets):
    """Extract baseline items from ``{sheet_name: rows}``.

    Raises ParseError when no budget sheet has a recognizable header.
    """
    items = []
    headers_found = 0
    for sheet_name, rows in sheets.items():
        if should_skip_sheet(sheet_name):
            logger.debug("Skipping non-budget sheet %s", sheet_name)
            continue
        found, sheet_items = parse_baseline_sheet(sheet_name, rows)
        if not found:
            logger.info("No baseline header in sheet %s", sheet_name)
            continue
        headers_found += 1
        logger.debug("Sheet %s: %d baseline rows", sheet_name, len(sheet_items))
        items.extend(sheet_items)
    if not headers_found:
        raise ParseError(
            "No worksheet has a recognizable baseline header",
            {"sheets": list(sheets)},
        )
    return items
