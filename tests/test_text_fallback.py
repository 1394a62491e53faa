"""
Tests for RegexOrderExtractor
"""

import pytest

from ordex.processors.order import RegexOrderExtractor
from ordex.processors.order.text_fallback import parse_decimal


class TestRegexOrderExtractor:
    """Tests for regex line item extraction"""

    def setup_method(self):
        self.extractor = RegexOrderExtractor()

    def test_unit_first_layout(self):
        """Test NAME UNIT QTY PRICE € lines"""
        result = self.extractor.extract("ACEITE OLIVA Litro 10 27,98 €")

        assert len(result.line_items) == 1
        item = result.line_items[0]
        assert item.name == "ACEITE OLIVA"
        assert item.unit == "Litro"
        assert item.quantity == 10
        assert item.unit_price == pytest.approx(27.98)
        assert item.total == pytest.approx(279.8)
        assert result.method == "regex_fallback"

    def test_quantity_first_layout(self):
        """Test NAME QTY UNIT PRICE € lines"""
        result = self.extractor.extract("QUESO MANCHEGO 2,5 Kilogramo 12,40 €")

        item = result.line_items[0]
        assert item.name == "QUESO MANCHEGO"
        assert item.quantity == pytest.approx(2.5)
        assert item.unit == "Kilogramo"
        assert item.total == pytest.approx(31.0)

    def test_order_total_is_sum_of_lines(self):
        """Test the order total sums line totals"""
        text = """Pedido semanal
ACEITE OLIVA Litro 10 2,50 €
TOMATE 3 Kg 1,20 €
Gracias"""
        result = self.extractor.extract(text)

        assert len(result.line_items) == 2
        assert result.order_total == pytest.approx(28.6)

    def test_tabulated_order_matches_stated_total(self):
        """Test four comma-decimal lines sum to the total written below them"""
        text = """CLIENTE: Bar Pepe
ACEITE OLIVA Litro 10 2,50 €
TOMATE 3 Kg 1,20 €
LECHE Litro 6 0,95 €
QUESO MANCHEGO 1 Kilogramo 14,90 €
TOTAL PEDIDO: 49,20 €"""
        result = self.extractor.extract(text)

        assert len(result.line_items) == 4
        assert result.order_total == pytest.approx(49.20, abs=0.02)

    def test_row_split_across_lines(self):
        """Test a row whose cells sit on separate lines still matches"""
        text = """Producto:
ACEITE OLIVA
Litro
10
2,50 €
QUESO MANCHEGO 1 Kilogramo 14,90 €"""
        result = self.extractor.extract(text)

        assert [item.name for item in result.line_items] == ["ACEITE OLIVA", "QUESO MANCHEGO"]
        assert result.line_items[0].unit == "Litro"
        assert result.line_items[0].quantity == 10
        assert result.order_total == pytest.approx(39.9)

    def test_thousands_separator_price(self):
        """Test prices with thousands separators"""
        result = self.extractor.extract("JAMON IBERICO Unidad 1 1.250,00 €")
        assert result.line_items[0].unit_price == pytest.approx(1250.0)

    def test_nothing_found(self):
        """Test text without product lines yields no items and no total"""
        result = self.extractor.extract("Hola, llamadme mañana")
        assert result.line_items == []
        assert result.order_total is None

    def test_empty_text(self):
        """Test empty input"""
        result = self.extractor.extract(None)
        assert result.line_items == []


class TestParseDecimal:
    """Tests for parse_decimal"""

    @pytest.mark.parametrize("value,expected", [
        ("27,98", 27.98),
        ("1.567,50", 1567.5),
        ("12.5", 12.5),
        ("10", 10.0),
    ])
    def test_values(self, value, expected):
        assert parse_decimal(value) == pytest.approx(expected)
