"""Supplier quote reader: pure functions over sheet grids.

Only stdlib and domain imports allowed.

Supplier templates are hand-made and vary per vendor: the header may sit
anywhere in the first rows, prices may come in USD with a derived SOLES
column, and the supplier's own price column can be labelled with its name
instead of a price keyword.
"""

import logging
import math

from domain.exceptions import ParseError
from domain.extraction.cells import cell_number, cell_str, description_value
from domain.extraction.headers import (
    find_adjacent_total_column,
    find_soles_column,
    find_supplier_column,
    find_supplier_header,
)
from domain.extraction.rows import is_summary_description
from domain.models import SupplierQuoteRow
from domain.normalization import normalize_code, normalize_label

logger = logging.getLogger(__name__)

MAX_UNIT_PRICE = 1e7
MAX_TOTAL_PRICE = 1e9


def _usable(value, limit):
    return value is not None and math.isfinite(value) and abs(value) <= limit


def _priced(value):
    return value is not None and math.isfinite(value) and value != 0


def parse_supplier_sheet(sheet_name, rows, supplier_name=None):
    """Return the priced rows of one worksheet, or None when it has no header."""
    header = find_supplier_header(rows)
    if header is None:
        return None
    columns = header.columns

    supplier_col = find_supplier_column(rows, supplier_name)
    soles_col = find_soles_column(rows, supplier_col)
    if soles_col is not None:
        supplier_col = soles_col
    supplier_total_col = find_adjacent_total_column(rows, supplier_col) if supplier_col is not None else None
    if supplier_col is not None:
        logger.debug("Sheet %s: supplier price column %d", sheet_name, supplier_col)

    has_offered_column = "offered_description" in columns
    result = []
    for idx in range(header.row_index + 1, len(rows)):
        row = rows[idx] or []
        description = description_value(row, columns.get("description"))
        offered_raw = cell_str(row, columns.get("offered_description"))
        offered = offered_raw if offered_raw else (description if not has_offered_column else None)
        base_description = description or offered
        if not base_description:
            continue
        code_raw = cell_str(row, columns.get("item_code"))
        if code_raw and normalize_label(code_raw) == "ITEM":
            continue
        if "DESCRIPCION DE PARTIDAS" in normalize_label(base_description):
            continue
        if is_summary_description(base_description):
            continue

        header_unit_price = cell_number(row, columns.get("unit_price"))
        header_total_price = cell_number(row, columns.get("total_price"))
        if supplier_col is not None:
            unit_price = cell_number(row, supplier_col)
            total_price = cell_number(row, supplier_total_col)
        else:
            unit_price, total_price = header_unit_price, header_total_price
        if not _usable(unit_price, MAX_UNIT_PRICE):
            unit_price = header_unit_price
        if not _usable(total_price, MAX_TOTAL_PRICE):
            total_price = header_total_price
        if not _priced(unit_price) and not _priced(total_price):
            continue

        result.append(
            SupplierQuoteRow(
                sheet_name=sheet_name,
                row_number=idx + 1,
                item_code=normalize_code(code_raw),
                description=base_description,
                offered_description=offered,
                brand=cell_str(row, columns.get("brand")),
                unit=cell_str(row, columns.get("unit")),
                quantity=cell_number(row, columns.get("quantity")),
                unit_price=unit_price,
                total_price=total_price,
            )
        )
    return result


def parse_supplier_workbook(sheets, supplier_name=None):
    """Extract supplier quote rows from ``{sheet_name: rows}``.

    A sheet without a header is skipped. Raises ParseError when no sheet has
    one, or when no priced row survives.
    """
    rows = []
    headers_found = 0
    for sheet_name, grid in sheets.items():
        sheet_rows = parse_supplier_sheet(sheet_name, grid, supplier_name)
        if sheet_rows is None:
            logger.info("No supplier header in sheet %s", sheet_name)
            continue
        headers_found += 1
        rows.extend(sheet_rows)
    if not headers_found:
        raise ParseError("No worksheet has a recognizable supplier header", {"sheets": list(sheets)})
    if not rows:
        raise ParseError("Supplier workbook has no priced rows", {"sheets": list(sheets)})
    return rows
