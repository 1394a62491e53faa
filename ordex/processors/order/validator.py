"""
Order Validator

Structural checks on an extraction result. Problems are reported as
ValidationWarning objects and logged; the result itself is never modified.
"""

import logging
from typing import List

from ordex.models import ExtractionResult, ValidationWarning

logger = logging.getLogger(__name__)

TOTAL_TOLERANCE = 0.02


def calculate_confidence(result: ExtractionResult) -> float:
    """
    Score an extraction result from its own content

    0.4 for having line items, up to 0.4 more for the share of complete items
    (name, quantity and price), 0.1 for a positive order total and 0.1 for any
    order detail (number, customer or date).
    """
    score = 0.0
    if result.line_items:
        score += 0.4
        complete = sum(1 for item in result.line_items if item.is_complete)
        score += (complete / len(result.line_items)) * 0.4

    if result.order_total and result.order_total > 0:
        score += 0.1

    if result.order_number or result.customer or result.date:
        score += 0.1

    return round(min(score, 1.0), 4)


class OrderValidator:
    """Validates extracted orders"""

    def validate(self, result: ExtractionResult) -> List[ValidationWarning]:
        """
        Validate an extraction result

        Args:
            result: Extraction result

        Returns:
            List of warnings; empty when the order is structurally sound
        """
        warnings: List[ValidationWarning] = []

        if not result.line_items:
            warnings.append(ValidationWarning(
                field='line_items',
                message='No products found in extracted data',
                code='no_line_items',
            ))

        for index, item in enumerate(result.line_items, start=1):
            if not item.name:
                warnings.append(ValidationWarning(
                    field=f'line_items[{index}].name',
                    message=f'Product {index}: Missing product name',
                    code='missing_name',
                ))
            if not item.quantity or item.quantity <= 0:
                warnings.append(ValidationWarning(
                    field=f'line_items[{index}].quantity',
                    message=f'Product {index}: Invalid quantity',
                    code='invalid_quantity',
                ))
            if not item.unit_price or item.unit_price <= 0:
                warnings.append(ValidationWarning(
                    field=f'line_items[{index}].unit_price',
                    message=f'Product {index}: Invalid unit price',
                    code='invalid_unit_price',
                ))

        if result.order_total and result.line_items:
            line_sum = result.line_total_sum()
            if line_sum > 0 and abs(line_sum - result.order_total) > TOTAL_TOLERANCE * result.order_total:
                warnings.append(ValidationWarning(
                    field='order_total',
                    message=f'Order total {result.order_total:.2f} differs from line totals {line_sum:.2f}',
                    code='total_mismatch',
                ))

        for warning in warnings:
            logger.warning(f"⚠️ Validation: {warning.message}")

        return warnings
