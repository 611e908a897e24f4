"""Cell coercion helpers for sheet grids: pure functions, zero external dependencies.

A sheet grid is a ``list[list[value]]`` where values are whatever the
workbook reader produced: str, int, float, bool, datetime or None.
"""

import math
import re

_NUMERIC_CHARS = re.compile(r"[^0-9.,\-]")
_COMMA_GROUPED = re.compile(r"^-?\d{1,3}(,\d{3})+$")
_DOT_GROUPED = re.compile(r"^-?\d{1,3}(\.\d{3})+$")
_HAS_LETTER = re.compile(r"[A-Za-z]")


def cell_text(value):
    """Render a cell as trimmed text; integral floats lose their '.0'."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value).strip()


def is_numeric_cell(value):
    """True for real numeric cells (not text that merely looks numeric)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def row_has_numbers(row):
    return any(is_numeric_cell(value) for value in row or ())


def is_finite_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def to_number(value):
    """Coerce a cell to float, or None.

    Currency symbols and thousands separators are stripped. When both ','
    and '.' appear the rightmost one is the decimal mark; a lone ',' is a
    decimal mark unless the text is grouped in thousands ('1,500').
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) else number
    if not isinstance(value, str):
        return None
    text = _NUMERIC_CHARS.sub("", value.strip()).strip(".,")
    if not any(ch.isdigit() for ch in text):
        return None
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", "") if _COMMA_GROUPED.match(text) else text.replace(",", ".")
    elif text.count(".") > 1 and _DOT_GROUPED.match(text):
        text = text.replace(".", "")
    try:
        return float(text)
    except ValueError:
        return None


def cell_at(row, index):
    if index is None or row is None or index < 0 or index >= len(row):
        return None
    return row[index]


def cell_str(row, index):
    """Trimmed text of row[index], or None when empty or out of range."""
    text = cell_text(cell_at(row, index))
    return text or None


def cell_number(row, index):
    return to_number(cell_at(row, index))


def has_letters(text):
    return bool(text) and _HAS_LETTER.search(text) is not None


def description_value(row, index):
    """Description cell, peeking one column right when the cell has no letters."""
    if index is None:
        return None
    raw = cell_str(row, index)
    if has_letters(raw):
        return raw
    following = cell_str(row, index + 1)
    if has_letters(following):
        return following
    return raw or following
