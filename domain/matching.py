"""Baseline index and supplier-row matcher: pure functions, zero external dependencies.

Only stdlib and domain imports allowed.

Item codes are reused and renumbered across supplier templates, so a code
hit is only trusted when the descriptions also overlap. Pure text matches
need both a similarity floor and a minimum number of shared tokens, so
that one generic word ("materiales") never forces a match.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from domain.models import MatchResult
from domain.normalization import normalize_code, normalize_sheet_name, normalize_text, tokenize

STRONG_OVERLAP_TOKENS = 3
STRONG_OVERLAP_SCORE = 0.45
MIN_ACCEPT_SCORE = 0.35
MIN_ACCEPT_OVERLAP = 2
HIGH_CONFIDENCE_SCORE = 0.6


@dataclass(frozen=True)
class BaselineIndexEntry:
    id: int
    description: str
    normalized_description: str
    tokens: frozenset
    item_code: str | None = None
    code_key: str | None = None
    sheet_key: str | None = None
    material_id: int | None = None


@dataclass
class BaselineIndex:
    """Lookup structures over the baseline items of one process."""

    by_code: dict[str, BaselineIndexEntry] = field(default_factory=dict)
    by_sheet: dict[str, list[BaselineIndexEntry]] = field(default_factory=dict)
    entries: list[BaselineIndexEntry] = field(default_factory=list)


def jaccard_details(a, b):
    """Return (jaccard score, intersection size) of two token sets."""
    if not a or not b:
        return 0.0, 0
    overlap = len(a & b)
    union = len(a) + len(b) - overlap
    return (overlap / union if union else 0.0), overlap


def has_strong_overlap(a, b):
    score, overlap = jaccard_details(a, b)
    return overlap >= STRONG_OVERLAP_TOKENS or score >= STRONG_OVERLAP_SCORE


def build_baseline_index(items):
    """Build the index from BaselineItem-like objects (id, item_code, description, sheet_name)."""
    index = BaselineIndex()
    for item in items:
        entry = BaselineIndexEntry(
            id=item.id,
            description=item.description,
            normalized_description=normalize_text(item.description),
            tokens=frozenset(tokenize(item.description)),
            item_code=item.item_code,
            code_key=normalize_code(item.item_code),
            sheet_key=normalize_sheet_name(item.sheet_name),
            material_id=getattr(item, "material_id", None),
        )
        index.entries.append(entry)
        if entry.code_key:
            index.by_code[entry.code_key] = entry
        if entry.sheet_key:
            index.by_sheet.setdefault(entry.sheet_key, []).append(entry)
    return index


def _match_by_code(index, code_key, sheet_key, tokens, candidates):
    exact = index.by_code.get(code_key)
    if exact is None:
        return None
    same_sheet = not sheet_key or not exact.sheet_key or exact.sheet_key == sheet_key
    if same_sheet and has_strong_overlap(tokens, exact.tokens):
        return exact
    for entry in candidates:
        if entry.code_key == code_key and has_strong_overlap(tokens, entry.tokens):
            return entry
    return None


def match_baseline(index, row):
    """Resolve a supplier row to a baseline entry, or report the best score found."""
    sheet_key = normalize_sheet_name(row.sheet_name)
    scoped = index.by_sheet.get(sheet_key) if sheet_key else None
    candidates = scoped if scoped else index.entries

    text = " ".join(part for part in (row.description, row.offered_description) if part)
    tokens = tokenize(text)

    code_key = normalize_code(row.item_code)
    if code_key:
        hit = _match_by_code(index, code_key, sheet_key, tokens, candidates)
        if hit is not None:
            return MatchResult(score=1.0, baseline_id=hit.id, overlap=len(tokens & hit.tokens))

    best_score = 0.0
    best_overlap = 0
    best_id = None
    for entry in candidates:
        score, overlap = jaccard_details(tokens, entry.tokens)
        if score > best_score or (score == best_score and overlap > best_overlap):
            best_score, best_overlap, best_id = score, overlap, entry.id

    enough_overlap = best_overlap >= MIN_ACCEPT_OVERLAP or best_score >= HIGH_CONFIDENCE_SCORE
    if best_score < MIN_ACCEPT_SCORE or not enough_overlap:
        return MatchResult(score=best_score, overlap=best_overlap)
    return MatchResult(score=best_score, baseline_id=best_id, overlap=best_overlap)
