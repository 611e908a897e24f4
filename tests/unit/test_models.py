"""Tests for domain.models: defaults, enums and derived properties."""

import dataclasses

import pytest

from domain.exceptions import DuplicateError, ParseError, QuotationError, ReferentialError, ValidationError
from domain.models import (
    BaselineItem,
    ImportMode,
    MatchResult,
    ProcessStatus,
    Quotation,
    QuotationItem,
    QuotationProcess,
    QuotationStatus,
    SupplierContext,
)


class TestEntities:
    def test_process_defaults(self):
        process = QuotationProcess(name="Colegio")
        assert process.base_currency == "PEN"
        assert process.status is ProcessStatus.OPEN
        assert process.id is None

    def test_baseline_lists_not_shared(self):
        a = BaselineItem(sheet_name="H", description="A")
        b = BaselineItem(sheet_name="H", description="B")
        a.section_path.append("OBRAS")
        assert b.section_path == []

    def test_quotation_display_name(self):
        assert Quotation(process_id=1, currency="PEN", supplier_name="Aceros SAC").display_name == "Aceros SAC"
        assert Quotation(process_id=1, currency="PEN").display_name == "Proveedor"

    def test_quotation_defaults(self):
        quotation = Quotation(process_id=1, currency="USD")
        assert quotation.status is QuotationStatus.RECEIVED
        assert quotation.total_amount == 0.0

    def test_item_defaults(self):
        item = QuotationItem(quotation_id=1, description="x", currency="PEN")
        assert item.manual is False
        assert item.unit_converted is False
        assert item.match_score == 0.0


class TestValueObjects:
    def test_match_result(self):
        assert MatchResult(score=1.0, baseline_id=3).matched
        assert not MatchResult(score=0.2).matched

    def test_supplier_context_frozen(self):
        ctx = SupplierContext(supplier_name="Aceros")
        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.supplier_name = "Otro"

    def test_import_mode_values(self):
        assert {m.value for m in ImportMode} == {"created", "updated"}


class TestExceptions:
    @pytest.mark.parametrize("error", [ParseError, ReferentialError, ValidationError, DuplicateError])
    def test_hierarchy(self, error):
        assert issubclass(error, QuotationError)

    def test_details(self):
        err = ReferentialError("outside process", {"baseline_id": 9})
        assert err.message == "outside process"
        assert err.details == {"baseline_id": 9}
        assert str(err) == "outside process"

    def test_details_default(self):
        assert ParseError("bad").details == {}
