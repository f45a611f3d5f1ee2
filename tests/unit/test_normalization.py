"""Tests for domain.normalization: column header and supplier normalization."""

import pytest

from domain.normalization import (
    as_record,
    normalize_hex_code,
    normalize_source_column,
    normalize_supplier_name,
)


class TestNormalizeSourceColumn:
    """Tests for normalize_source_column."""

    def test_strip_accents_case_and_spaces(self):
        assert normalize_source_column("  Héx Code  ") == "hex code"

    def test_matiere(self):
        assert normalize_source_column("Matière") == "matiere"
        assert normalize_source_column("matiere") == "matiere"

    def test_cedilla_and_circumflex(self):
        assert normalize_source_column("Façade Qté Prix unitaire HT Côté") == (
            "facade qte prix unitaire ht cote"
        )

    def test_internal_spaces_kept(self):
        assert normalize_source_column("Prix  Net") == "prix  net"

    def test_empty(self):
        assert normalize_source_column("") == ""

    @pytest.mark.parametrize("value", [
        "Désignation", "  HEX Code ", "İstanbul", "ÉLÉMENT", "Temps U (h)", "",
    ])
    def test_idempotent(self, value):
        once = normalize_source_column(value)
        assert normalize_source_column(once) == once


class TestNormalizeSupplierName:
    """Tests for normalize_supplier_name."""

    def test_trim_and_collapse(self):
        assert normalize_supplier_name("   Supplier  ABC  ") == "Supplier ABC"

    def test_tabs_and_newlines(self):
        assert normalize_supplier_name("Hydro\t\nSud") == "Hydro Sud"

    def test_case_preserved(self):
        assert normalize_supplier_name("hydro SUD") == "hydro SUD"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_default_general(self, value):
        assert normalize_supplier_name(value) == "General"

    def test_no_argument(self):
        assert normalize_supplier_name() == "General"

    def test_idempotent(self):
        once = normalize_supplier_name("  Robinetterie   Durand ")
        assert normalize_supplier_name(once) == once


class TestNormalizeHexCode:
    def test_upper_and_trim(self):
        assert normalize_hex_code("  hx-van-050 ") == "HX-VAN-050"


class TestAsRecord:
    def test_dict_returned(self):
        data = {"a": 1}
        assert as_record(data) is data

    @pytest.mark.parametrize("value", [None, [1, 2], "text", 3])
    def test_non_dict_is_empty(self, value):
        assert as_record(value) == {}
