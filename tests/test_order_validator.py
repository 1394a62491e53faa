"""
Tests for OrderValidator and confidence scoring
"""

import pytest

from ordex.models import ExtractionResult, LineItem
from ordex.processors.order import OrderValidator, calculate_confidence


def _item(name="ACEITE", quantity=1.0, unit_price=2.0, total=None):
    if total is None and quantity and unit_price:
        total = quantity * unit_price
    return LineItem(name=name, quantity=quantity, unit_price=unit_price, total=total)


class TestCalculateConfidence:
    """Tests for calculate_confidence"""

    def test_empty_result(self):
        assert calculate_confidence(ExtractionResult()) == 0.0

    def test_complete_order(self):
        """Test a complete order scores 1.0"""
        result = ExtractionResult(order_number="1", line_items=[_item()], order_total=2.0)
        assert calculate_confidence(result) == pytest.approx(1.0)

    def test_partial_items(self):
        """Test the completeness share scales the item score"""
        result = ExtractionResult(line_items=[_item(), _item(unit_price=None)])
        assert calculate_confidence(result) == pytest.approx(0.4 + 0.2)

    def test_details_only(self):
        """Test order details alone give 0.1"""
        assert calculate_confidence(ExtractionResult(customer="Bar Pepe")) == pytest.approx(0.1)

    def test_adding_complete_items_never_lowers_score(self):
        """Test adding complete line items does not decrease confidence"""
        items = [_item(unit_price=None)]
        previous = calculate_confidence(ExtractionResult(line_items=items))
        for _ in range(3):
            items = items + [_item()]
            score = calculate_confidence(ExtractionResult(line_items=items))
            assert score >= previous
            previous = score


class TestOrderValidator:
    """Tests for OrderValidator"""

    def setup_method(self):
        self.validator = OrderValidator()

    def test_valid_order(self):
        result = ExtractionResult(line_items=[_item(), _item(name="TOMATE")], order_total=4.0)
        assert self.validator.validate(result) == []

    def test_no_line_items(self):
        warnings = self.validator.validate(ExtractionResult())
        assert [w.code for w in warnings] == ["no_line_items"]

    def test_line_item_problems(self):
        """Test each missing field is reported per line"""
        result = ExtractionResult(line_items=[LineItem(name=None, quantity=0, unit_price=-1)])
        codes = {w.code for w in self.validator.validate(result)}
        assert codes == {"missing_name", "invalid_quantity", "invalid_unit_price"}

    def test_total_mismatch(self):
        """Test line totals disagreeing with the order total beyond 2%"""
        result = ExtractionResult(line_items=[_item(quantity=10, unit_price=2.0)], order_total=25.0)
        warnings = self.validator.validate(result)
        assert [w.code for w in warnings] == ["total_mismatch"]

    def test_total_within_tolerance(self):
        result = ExtractionResult(line_items=[_item(quantity=10, unit_price=2.0)], order_total=20.3)
        assert self.validator.validate(result) == []

    def test_does_not_mutate(self):
        """Test validation leaves the result untouched"""
        result = ExtractionResult(line_items=[LineItem(name=None, quantity=0)])
        before = result.model_dump()
        self.validator.validate(result)
        assert result.model_dump() == before
