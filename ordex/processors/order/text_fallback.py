"""
Regex order extraction

Last-resort extraction when no provider returned parseable JSON: scans free
text for product lines in the two layouts customers commonly use,

    ACEITE OLIVA Litro 10 27,98 €
    ACEITE OLIVA 10 Litro 27,98 €
"""

import logging
import re
from typing import List, Optional, Tuple

from ordex.models import ExtractionResult, LineItem

logger = logging.getLogger(__name__)

UNITS = r'Kilogramos?|Kilos?|Litros?|Unidades|Unidad|Piezas?|Cajas?|Kg|Ud|Uds'
NAME = r'([A-Za-zÁÉÍÓÚÑÜáéíóúñü][A-Za-zÁÉÍÓÚÑÜáéíóúñü0-9 .\-/]*?)'
NUMBER = r'(\d+(?:[.,]\d+)?)'
PRICE = r'(\d{1,3}(?:\.\d{3})*,\d+|\d+(?:[.,]\d+)?)'

# NAME UNIT QTY PRICE €
UNIT_FIRST = re.compile(
    rf'{NAME}\s+({UNITS})\s+{NUMBER}\s+{PRICE}\s*€', re.IGNORECASE
)
# NAME QTY UNIT PRICE €
QUANTITY_FIRST = re.compile(
    rf'{NAME}\s+{NUMBER}\s+({UNITS})\s+{PRICE}\s*€', re.IGNORECASE
)
LAYOUTS = (UNIT_FIRST, QUANTITY_FIRST)


def parse_decimal(value: str) -> Optional[float]:
    """Parse '27,98', '1.567,50' or '12.5' into a float"""
    value = value.strip()
    if ',' in value:
        value = value.replace('.', '').replace(',', '.')
    try:
        return float(value)
    except ValueError:
        return None


class RegexOrderExtractor:
    """Extracts line items from free text with regular expressions"""

    method = "regex_fallback"

    def extract(self, text: Optional[str]) -> ExtractionResult:
        """
        Scan text for product rows

        The whole text is scanned, so a row whose cells were split across
        lines (common in vision output) still matches. Product names never
        span a line break.

        Args:
            text: Free text (provider output or source content)

        Returns:
            ExtractionResult; line_items is empty when nothing matched
        """
        items: List[LineItem] = []
        for match, layout in self._scan(text or ''):
            item = self._to_line_item(match, layout)
            if item is not None:
                items.append(item)

        order_total = None
        if items:
            order_total = round(sum(item.total or 0.0 for item in items), 2)
            logger.info(f"🔍 Regex fallback found {len(items)} line item(s)")

        return ExtractionResult(
            line_items=items,
            order_total=order_total,
            note=(text or '')[:2000] or None,
            method=self.method,
        )

    @staticmethod
    def _scan(text: str) -> List[Tuple[re.Match, re.Pattern]]:
        """Matches of both layouts in text order, overlapping matches dropped"""
        found = [(match, layout) for layout in LAYOUTS for match in layout.finditer(text)]
        # Earliest start wins; the unit-first layout wins ties
        found.sort(key=lambda pair: (pair[0].start(), LAYOUTS.index(pair[1])))

        rows: List[Tuple[re.Match, re.Pattern]] = []
        end = -1
        for match, layout in found:
            if match.start() >= end:
                rows.append((match, layout))
                end = match.end()
        return rows

    @staticmethod
    def _to_line_item(match: re.Match, layout: re.Pattern) -> Optional[LineItem]:
        if layout is UNIT_FIRST:
            name, unit, quantity, price = match.groups()
        else:
            name, quantity, unit, price = match.groups()

        quantity_value = parse_decimal(quantity)
        price_value = parse_decimal(price)
        if quantity_value is None or price_value is None:
            return None

        return LineItem(
            name=name.strip(),
            quantity=quantity_value,
            unit=unit,
            unit_price=price_value,
            total=round(quantity_value * price_value, 2),
        )
