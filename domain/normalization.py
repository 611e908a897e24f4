"""Domain normalization: pure functions, zero external dependencies.

Only stdlib imports allowed.
"""

import re
import unicodedata

_NON_ALNUM_SPACE = re.compile(r"[^A-Z0-9 ]")
_NON_CODE = re.compile(r"[^A-Z0-9.]")
_TRAILING_ZERO_GROUP = re.compile(r"\.0+$")
_WHITESPACE = re.compile(r"\s+")
_GUIDE_SEPARATORS = re.compile(r"\s*([\-_/])\s*")
_GUIDE_PUNCT = re.compile(r"[\s\-_/.,\\:;|+·]")


def strip_accents(value):
    """Decompose and drop combining marks: 'Tubería' -> 'Tuberia'."""
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(value):
    """Uppercase, strip accents, keep only [A-Z0-9 ], collapse whitespace."""
    if not value:
        return ""
    result = strip_accents(str(value).upper())
    result = _NON_ALNUM_SPACE.sub(" ", result)
    return _WHITESPACE.sub(" ", result).strip()


def tokenize(value):
    """Return the set of normalized tokens longer than two characters."""
    return {token for token in normalize_text(value).split(" ") if len(token) > 2}


def normalize_code(code):
    """Normalize an item code: '0012.0' -> '0012', '' -> None."""
    if code is None:
        return None
    trimmed = _NON_CODE.sub("", str(code).upper())
    if not trimmed:
        return None
    return _TRAILING_ZERO_GROUP.sub("", trimmed) or trimmed


def normalize_label(value):
    """Normalize a header or cell label; punctuation is kept."""
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", strip_accents(str(value))).strip().upper()


def normalize_name_for_match(value):
    """Alphanumeric-only label used to look for a supplier name in a sheet."""
    return re.sub(r"[^A-Z0-9]", "", normalize_label(value))


def normalize_sheet_name(name):
    """Trimmed, uppercased sheet name, or None when blank."""
    if not name:
        return None
    trimmed = str(name).strip()
    return trimmed.upper() if trimmed else None


def progress_key(description, unit):
    """Case/accent-insensitive (description, unit) key for purchase progress."""
    normalized = normalize_text(description).lower()
    unit_key = unit.strip().lower() if unit else ""
    return f"{normalized}::{unit_key}"


def normalize_identifier(value):
    """Collapse whitespace and uppercase an order/guide identifier."""
    if not value:
        return None
    trimmed = str(value).strip()
    if not trimmed:
        return None
    return _WHITESPACE.sub(" ", trimmed).upper()


def format_guide_number(value):
    """Canonical display form of a delivery guide number: '001 - 45' -> '001-45'."""
    normalized = normalize_identifier(value)
    if not normalized:
        return None
    return _GUIDE_SEPARATORS.sub(r"\1", normalized)


def collapse_guide_number(value):
    """Punctuation-free key used to detect duplicate guide numbers."""
    formatted = format_guide_number(value)
    if not formatted:
        return None
    return _GUIDE_PUNCT.sub("", formatted) or None
