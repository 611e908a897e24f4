"""Tests for domain.extraction.baseline_parser on in-memory sheet grids."""

import pytest

from domain.exceptions import ParseError
from domain.extraction.baseline_parser import parse_baseline_sheet, parse_baseline_workbook

HEADER = ["ITEM", "DESCRIPCION", "UND", "METRADO", "PRECIO UNITARIO", "TOTAL"]


def _budget():
    return [
        ["PRESUPUESTO: AMPLIACION COLEGIO"],
        HEADER,
        ["01", "OBRAS PROVISIONALES", None, None, None, None],
        ["01.01", "Cemento Portland tipo I", "bls", 10, 25, 250],
        ["01.02", "Arena gruesa", "m3", 5, 40, None],
        ["02", "ESTRUCTURAS:", None, None, None, None],
        ["02.01", "Acero corrugado fy=4200", "kg", 120, 4.5, 540],
        [None, "SUB TOTAL", None, None, None, 1330],
        [None, None, None, None, None, None],
        [None, "TOTAL", None, None, None, 1330],
    ]


class TestParseBaselineSheet:
    """Tests for parse_baseline_sheet."""

    def test_items_and_sections(self):
        found, items = parse_baseline_sheet("Presupuesto", _budget())
        assert found is True
        assert [i.description for i in items] == [
            "Cemento Portland tipo I",
            "Arena gruesa",
            "Acero corrugado fy=4200",
        ]
        assert items[0].section_path == ["OBRAS PROVISIONALES"]
        assert items[2].section_path == ["OBRAS PROVISIONALES", "ESTRUCTURAS"]

    def test_section_right_below_header(self):
        rows = [
            HEADER,
            ["01", "OBRAS PROVISIONALES", None, None, None, None],
            ["01.01", "Cemento Portland tipo I", "bls", 10, 25, 250],
        ]
        found, items = parse_baseline_sheet("Presupuesto", rows)
        assert found is True
        (cemento,) = items
        assert cemento.section_path == ["OBRAS PROVISIONALES"]
        assert cemento.quantity == 10

    def test_total_computed_from_quantity_and_price(self):
        _, items = parse_baseline_sheet("Presupuesto", _budget())
        cemento, arena = items[0], items[1]
        assert cemento.total_price == 250
        assert arena.total_price == pytest.approx(200.0)

    def test_fields(self):
        _, items = parse_baseline_sheet("Presupuesto", _budget())
        cemento = items[0]
        assert cemento.item_code == "01.01"
        assert cemento.unit == "bls"
        assert cemento.quantity == 10
        assert cemento.unit_price == 25
        assert cemento.sheet_name == "Presupuesto"
        assert cemento.row_number == 4

    def test_single_item(self):
        rows = [HEADER, [None, "Cemento", "bls", 10, 25, None]]
        _, items = parse_baseline_sheet("Hoja1", rows)
        assert len(items) == 1
        assert items[0].total_price == 250

    def test_no_header(self):
        found, items = parse_baseline_sheet("Notas", [["texto libre"], ["otra linea", 3]])
        assert found is False
        assert items == []

    def test_rows_without_numbers_or_letters_skipped(self):
        rows = [HEADER, ["01.01", "12345", None, 3, 2, 6], ["01.02", "Yeso", "bls", None, None, None]]
        _, items = parse_baseline_sheet("Hoja1", rows)
        assert items == []

    def test_provider_quotes(self):
        rows = [
            ["ITEM", "DESCRIPCION", "UND", "METRADO", "PRECIO UNITARIO", "COTIZACION", "COTIZACION"],
            [None, None, None, "ESTUDIO", None, None, None],
            [None, None, None, None, None, "Ferreteria Lima", None],
            ["01", "Cemento Portland", "bls", 10, 25, 24, 26.5],
        ]
        _, items = parse_baseline_sheet("Hoja1", rows)
        assert items[0].provider_quotes == {"Ferreteria Lima": 24, "Cotizacion 6": 26.5}


class TestParseBaselineWorkbook:
    """Tests for parse_baseline_workbook."""

    def test_skips_summary_sheets(self):
        sheets = {"Resumen": _budget(), "Presupuesto": _budget()}
        items = parse_baseline_workbook(sheets)
        assert len(items) == 3
        assert {i.sheet_name for i in items} == {"Presupuesto"}

    def test_several_sheets(self):
        items = parse_baseline_workbook({"Estructuras": _budget(), "Arquitectura": _budget()})
        assert len(items) == 6

    def test_no_header_anywhere(self):
        with pytest.raises(ParseError):
            parse_baseline_workbook({"Hoja1": [["nada"]], "Resumen": _budget()})
