"""
Order Normalizer

Turns provider JSON (English or Spanish field names, locale-formatted
numbers, DD/MM/YYYY dates) into an ExtractionResult.
"""

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional

from ordex.models import ExtractionResult, LineItem

logger = logging.getLogger(__name__)

ORDER_FIELD_ALIASES = {
    'order_number': ('order_number', 'numero_pedido', 'order_id', 'pedido'),
    'customer': ('customer', 'cliente', 'customer_name'),
    'customer_code': ('customer_code', 'cliente_codigo'),
    'date': ('date', 'fecha_pedido', 'order_date', 'fecha'),
    'line_items': ('line_items', 'productos', 'items', 'products'),
    'order_total': ('order_total', 'total_pedido', 'total'),
    'note': ('note', 'observaciones', 'notes'),
}

LINE_FIELD_ALIASES = {
    'name': ('product_name', 'name', 'nombre_producto', 'descripcion', 'nombre', 'description'),
    'code': ('code', 'codigo', 'product_code'),
    'quantity': ('quantity', 'cantidad'),
    'unit': ('unit', 'unidad'),
    'unit_price': ('unit_price', 'precio_unitario', 'price', 'precio'),
    'total': ('line_total', 'total_producto', 'total', 'importe'),
}

DMY_DATE = re.compile(r'^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})$')
ISO_DATE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})')


def to_number(value: Any) -> Optional[float]:
    """
    Parse a locale-formatted number

    Both '1.234,50' and '1,234.50' parse to 1234.5; the last separator is the
    decimal one. A lone comma is a decimal comma.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    text = str(value).strip()
    # Plain Python numbers ("12.5", "1e3", "-4") before stripping symbols
    try:
        number = float(text)
    except ValueError:
        pass
    else:
        return number if math.isfinite(number) else None

    raw = re.sub(r'[^0-9,.\-]', '', text)
    if not raw:
        return None

    if ',' in raw and '.' in raw:
        if raw.rfind(',') > raw.rfind('.'):
            raw = raw.replace('.', '').replace(',', '.')
        else:
            raw = raw.replace(',', '')
    elif ',' in raw:
        raw = raw.replace(',', '.')

    try:
        return float(raw)
    except ValueError:
        return None


def clean_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_date(value: Any) -> Optional[str]:
    """DD/MM/YYYY → YYYY-MM-DD; ISO dates pass through; anything else is kept as given"""
    text = clean_string(value)
    if not text:
        return None

    match = DMY_DATE.match(text)
    if match:
        day, month, year = match.groups()
        return f"{year}-{int(month):02d}-{int(day):02d}"

    match = ISO_DATE.match(text)
    if match:
        return match.group(0)

    return text


def normalize_unit(value: Any) -> Optional[str]:
    text = clean_string(value)
    if not text or re.search(r'\d', text):
        return None
    return text.lower()


def normalize_product_code(value: Any) -> Optional[str]:
    text = clean_string(value)
    if not text:
        return None
    return re.sub(r'[^A-Z0-9]', '', text.upper()) or None


def normalize_client_code(name: Any) -> Optional[str]:
    """Slug a client name into a candidate code ('Bar Pepe S.L.' → 'BAR_PEPE_S_L')"""
    text = clean_string(name)
    if not text:
        return None
    return re.sub(r'[^a-z0-9]+', '_', text.lower()).strip('_').upper() or None


def _pick(data: Dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if key in data and data[key] not in (None, ''):
            return data[key]
    return None


class OrderNormalizer:
    """Normalizes provider order JSON into an ExtractionResult"""

    def normalize(self, data: Dict[str, Any], method: str = "unknown",
                  raw_output: Optional[str] = None) -> ExtractionResult:
        """
        Normalize an order dict

        Args:
            data: Parsed provider JSON
            method: Provider/method that produced the data
            raw_output: Raw provider text kept for auditing

        Returns:
            ExtractionResult (confidence left at 0; scoring happens afterwards)
        """
        items_data = _pick(data, ORDER_FIELD_ALIASES['line_items'])
        if not isinstance(items_data, list):
            items_data = []

        line_items: List[LineItem] = [
            self.normalize_line(item) for item in items_data if isinstance(item, dict)
        ]

        customer = clean_string(_pick(data, ORDER_FIELD_ALIASES['customer']))
        customer_code = clean_string(_pick(data, ORDER_FIELD_ALIASES['customer_code'])) \
            or normalize_client_code(customer)

        return ExtractionResult(
            order_number=clean_string(_pick(data, ORDER_FIELD_ALIASES['order_number'])),
            customer=customer,
            customer_code=customer_code,
            date=normalize_date(_pick(data, ORDER_FIELD_ALIASES['date'])),
            line_items=line_items,
            order_total=to_number(_pick(data, ORDER_FIELD_ALIASES['order_total'])),
            note=clean_string(_pick(data, ORDER_FIELD_ALIASES['note'])),
            method=method,
            raw_output=raw_output,
        )

    def normalize_line(self, item: Dict[str, Any]) -> LineItem:
        quantity = to_number(_pick(item, LINE_FIELD_ALIASES['quantity']))
        unit_price = to_number(_pick(item, LINE_FIELD_ALIASES['unit_price']))
        total = to_number(_pick(item, LINE_FIELD_ALIASES['total']))
        if total is None and quantity is not None and unit_price is not None:
            total = round(quantity * unit_price, 2)

        return LineItem(
            name=clean_string(_pick(item, LINE_FIELD_ALIASES['name'])),
            code=normalize_product_code(_pick(item, LINE_FIELD_ALIASES['code'])),
            quantity=quantity,
            unit=normalize_unit(_pick(item, LINE_FIELD_ALIASES['unit'])),
            unit_price=unit_price,
            total=total,
        )


def normalize_order_dict(data: Dict[str, Any], method: str = "unknown",
                         raw_output: Optional[str] = None) -> ExtractionResult:
    """Convenience wrapper around OrderNormalizer.normalize"""
    return OrderNormalizer().normalize(data, method=method, raw_output=raw_output)
