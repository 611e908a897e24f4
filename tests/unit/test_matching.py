"""Tests for domain.matching: baseline index and supplier-row matcher."""

import pytest

from domain.matching import build_baseline_index, has_strong_overlap, jaccard_details, match_baseline
from domain.models import BaselineItem, SupplierQuoteRow
from domain.normalization import normalize_text


def _baseline(id, description, sheet="Presupuesto", code=None, unit=None):
    return BaselineItem(id=id, sheet_name=sheet, description=description, item_code=code, unit=unit)


def _row(description, sheet="Presupuesto", code=None, offered=None):
    return SupplierQuoteRow(
        sheet_name=sheet,
        row_number=1,
        description=description,
        item_code=code,
        offered_description=offered,
    )


class TestJaccard:
    """Tests for jaccard_details and has_strong_overlap."""

    def test_identical_sets(self):
        tokens = {"TUBO", "PVC", "SAP"}
        assert jaccard_details(tokens, set(tokens)) == (1.0, 3)

    def test_empty_set(self):
        assert jaccard_details(set(), {"PVC"}) == (0.0, 0)

    def test_partial_overlap(self):
        score, overlap = jaccard_details({"A1", "B2", "C3"}, {"B2", "C3", "D4"})
        assert overlap == 2
        assert score == pytest.approx(0.5)

    def test_strong_by_count(self):
        assert has_strong_overlap({"AAA", "BBB", "CCC", "X1", "X2", "X3", "X4"}, {"AAA", "BBB", "CCC", "Y1", "Y2"})

    def test_weak(self):
        assert not has_strong_overlap({"MATERIALES", "LIMPIEZA"}, {"MATERIALES", "ELECTRICOS", "VARIOS"})


class TestBuildIndex:
    """Tests for build_baseline_index."""

    def test_entries_and_buckets(self):
        index = build_baseline_index([
            _baseline(1, "Cemento Portland", code="01.01"),
            _baseline(2, "Arena gruesa", sheet="Exteriores"),
        ])
        assert len(index.entries) == 2
        assert index.by_code["01.01"].id == 1
        assert [e.id for e in index.by_sheet["PRESUPUESTO"]] == [1]
        assert [e.id for e in index.by_sheet["EXTERIORES"]] == [2]

    def test_code_collision_last_wins(self):
        index = build_baseline_index([
            _baseline(1, "Cemento Portland", code="12"),
            _baseline(2, "Cemento blanco", code="12.0"),
        ])
        assert index.by_code["12"].id == 2

    def test_normalized_description_idempotent(self):
        once = normalize_text("Tubería PVC-SAP Ø 2\"")
        assert normalize_text(once) == once


class TestMatchBaseline:
    """Tests for match_baseline."""

    def test_code_match_validated_by_description(self):
        index = build_baseline_index([_baseline(1, 'Tubería PVC 2"', code="12", unit="M")])
        result = match_baseline(index, _row("Tubería PVC 2 pulgadas", code="12"))
        assert result.baseline_id == 1
        assert result.score == 1.0

    def test_code_match_rejected_without_overlap(self):
        index = build_baseline_index([
            _baseline(1, "Cemento Portland tipo I", code="12"),
            _baseline(2, "Alambre negro recocido", code="13"),
        ])
        result = match_baseline(index, _row("Alambre negro recocido N 16", code="12"))
        assert result.baseline_id == 2
        assert result.overlap == 3

    def test_code_match_in_other_sheet_bucket(self):
        index = build_baseline_index([
            _baseline(1, "Cable eléctrico THW 14 AWG", sheet="Electricas", code="05"),
            _baseline(2, "Cable eléctrico THW 14 AWG", sheet="Sanitarias", code="05"),
        ])
        result = match_baseline(index, _row("Cable eléctrico THW 14 AWG", sheet="Electricas", code="05"))
        assert result.baseline_id == 1
        assert result.score == 1.0

    def test_single_generic_token_does_not_match(self):
        index = build_baseline_index([_baseline(1, "Materiales eléctricos varios")])
        result = match_baseline(index, _row("Materiales de limpieza"))
        assert result.baseline_id is None
        assert result.score == pytest.approx(0.25)

    def test_text_match_needs_two_tokens(self):
        index = build_baseline_index([
            _baseline(1, "Arena gruesa"),
            _baseline(2, "Piedra chancada 1/2"),
        ])
        result = match_baseline(index, _row("Arena gruesa lavada"))
        assert result.baseline_id == 1
        assert result.overlap == 2

    def test_offered_description_counts(self):
        index = build_baseline_index([_baseline(1, "Ladrillo King Kong 18 huecos")])
        result = match_baseline(index, _row("Ladrillo", offered="Ladrillo King Kong 18 huecos Lark"))
        assert result.baseline_id == 1

    def test_never_crosses_non_empty_sheet(self):
        index = build_baseline_index([
            _baseline(1, "Pintura latex blanco", sheet="Arquitectura"),
            _baseline(2, "Tubo PVC desague", sheet="Sanitarias"),
        ])
        result = match_baseline(index, _row("Pintura latex blanco", sheet="Sanitarias"))
        assert result.baseline_id is None

    def test_unknown_sheet_falls_back_to_all_entries(self):
        index = build_baseline_index([
            _baseline(1, "Pintura latex blanco", sheet="Arquitectura"),
            _baseline(2, "Tubo PVC desague", sheet="Sanitarias"),
        ])
        result = match_baseline(index, _row("Pintura latex blanco", sheet="Cotizacion"))
        assert result.baseline_id == 1
        assert result.score == pytest.approx(1.0)

    def test_prefers_closest_description(self):
        index = build_baseline_index([
            _baseline(1, "Tubo PVC"),
            _baseline(2, "Tubo PVC SAP clase presion"),
        ])
        result = match_baseline(index, _row("Tubo PVC SAP clase presion"))
        assert result.baseline_id == 2
