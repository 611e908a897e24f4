"""Tests for domain.extraction.supplier_parser on in-memory sheet grids."""

import pytest

from domain.exceptions import ParseError
from domain.extraction.supplier_parser import parse_supplier_sheet, parse_supplier_workbook


def _quote():
    return [
        ["COTIZACION N 0456-2024"],
        ["Atencion: Area de logistica"],
        ["ITEM", "DESCRIPCION", "MARCA", "UND", "CANT", "PRECIO UNITARIO", "TOTAL"],
        ["01.01", "Cemento Portland tipo I", "Sol", "bls", 10, 24.5, 245],
        ["01.02", "Arena gruesa", None, "m3", 5, 38, 190],
        ["01.03", "Yeso en bolsa", None, "bls", 4, None, None],
        [None, "SUB TOTAL", None, None, None, None, 435],
        [None, "TOTAL", None, None, None, None, 513.3],
    ]


class TestParseSupplierSheet:
    """Tests for parse_supplier_sheet."""

    def test_priced_rows(self):
        rows = parse_supplier_sheet("Cotizacion", _quote())
        assert [r.description for r in rows] == ["Cemento Portland tipo I", "Arena gruesa"]

    def test_priced_summary_rows_dropped(self):
        rows = parse_supplier_sheet("Cotizacion", _quote())
        assert not {"SUB TOTAL", "TOTAL"} & {r.description for r in rows}
        assert sum(r.total_price for r in rows) == pytest.approx(435.0)

    def test_fields(self):
        cemento = parse_supplier_sheet("Cotizacion", _quote())[0]
        assert cemento.item_code == "01.01"
        assert cemento.brand == "Sol"
        assert cemento.unit == "bls"
        assert cemento.quantity == 10
        assert cemento.unit_price == 24.5
        assert cemento.total_price == 245
        assert cemento.row_number == 4
        assert cemento.offered_description == "Cemento Portland tipo I"

    def test_no_header(self):
        assert parse_supplier_sheet("Notas", [["hola"], ["mundo"]]) is None

    def test_stray_item_header_row_dropped(self):
        grid = _quote()
        grid.insert(3, ["ITEM", "DESCRIPCION DE PARTIDAS", None, None, None, 1, None])
        rows = parse_supplier_sheet("Cotizacion", grid)
        assert "DESCRIPCION DE PARTIDAS" not in [r.description for r in rows]

    def test_offered_description_column(self):
        grid = [
            ["ITEM", "ARTICULO LICITADO", "ARTICULO OFERTADO", "PRECIO"],
            ["1", "Tubo PVC 2 pulg", "Tubo PVC SAP 2 pulg Pavco", 12.0],
            ["2", "Codo PVC 2 pulg", None, 3.5],
        ]
        rows = parse_supplier_sheet("Hoja1", grid)
        assert rows[0].offered_description == "Tubo PVC SAP 2 pulg Pavco"
        assert rows[1].offered_description is None

    def test_supplier_soles_column(self):
        grid = [
            ["ITEM", "DESCRIPCION", "UND", "PRECIO REFERENCIAL", "Aceros Arequipa", None, None],
            [None, None, None, None, "P.U. USD", "SOLES", "TOTAL"],
            ["1", "Acero corrugado 1/2", "var", 30.0, 8.0, 30.4, 912],
        ]
        rows = parse_supplier_sheet("Hoja1", grid, supplier_name="Aceros Arequipa")
        assert rows[0].unit_price == pytest.approx(30.4)
        assert rows[0].total_price == 912

    def test_implausible_supplier_value_falls_back(self):
        grid = [
            ["ITEM", "DESCRIPCION", "PRECIO UNITARIO", "Ferreteria Lima"],
            ["1", "Arena gruesa", 40.0, 1e12],
        ]
        rows = parse_supplier_sheet("Hoja1", grid, supplier_name="Ferreteria Lima")
        assert rows[0].unit_price == 40.0

    def test_description_peeks_right(self):
        grid = [
            ["ITEM", "DESCRIPCION", None, "PRECIO"],
            ["1", "01.02", "Arena fina", 35.0],
        ]
        rows = parse_supplier_sheet("Hoja1", grid)
        assert rows[0].description == "Arena fina"


class TestParseSupplierWorkbook:
    """Tests for parse_supplier_workbook."""

    def test_sheet_without_header_is_skipped(self):
        rows = parse_supplier_workbook({"Condiciones": [["Validez 15 dias"]], "Cotizacion": _quote()})
        assert len(rows) == 2

    def test_no_header_anywhere(self):
        with pytest.raises(ParseError):
            parse_supplier_workbook({"Hoja1": [["nada"]]})

    def test_no_priced_rows(self):
        grid = [["ITEM", "DESCRIPCION", "PRECIO"], ["1", "Arena", None]]
        with pytest.raises(ParseError):
            parse_supplier_workbook({"Hoja1": grid})
