"""
Order persistence

Saves enriched extraction results as orders with their line items.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ordex.db import Database, Order, OrderLine
from ordex.errors import PersistenceError
from ordex.models import ExtractionResult, IngestedItem, ValidationWarning

logger = logging.getLogger(__name__)

UNKNOWN_CUSTOMER = 'unknown'


class OrderStore(ABC):
    """Order persistence contract"""

    @abstractmethod
    async def save(self, result: ExtractionResult, item: IngestedItem,
                   warnings: Optional[List[ValidationWarning]] = None) -> str:
        """
        Save an order

        Returns:
            ID of the saved order

        Raises:
            PersistenceError: If the order could not be saved
        """
        pass


class SQLOrderStore(OrderStore):
    """Order store backed by the ORDEX database"""

    def __init__(self, db: Database):
        self.db = db

    async def save(self, result: ExtractionResult, item: IngestedItem,
                   warnings: Optional[List[ValidationWarning]] = None) -> str:
        try:
            return await asyncio.to_thread(self._save, result, item, warnings or [])
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save order: {e}") from e

    def _save(self, result: ExtractionResult, item: IngestedItem,
              warnings: List[ValidationWarning]) -> str:
        # Missing order details get placeholders rather than blocking the save
        order_number = result.order_number or f"AUTO-{int(datetime.now().timestamp() * 1000)}"
        customer_match = result.customer_match

        with self.db.transaction() as session:
            order = Order(
                order_number=order_number,
                customer=result.customer or UNKNOWN_CUSTOMER,
                customer_code=(customer_match.code if customer_match and customer_match.code
                               else result.customer_code),
                customer_match_status=customer_match.status.value if customer_match else None,
                order_date=result.date or date.today().isoformat(),
                order_total=result.order_total,
                note=result.note,
                confidence=result.confidence,
                method=result.method,
                channel=item.channel.value,
                sender=item.sender,
                raw_output=result.raw_output,
                warnings=[w.model_dump() for w in warnings] or None,
            )
            for position, line in enumerate(result.line_items, start=1):
                match = line.match
                order.lines.append(OrderLine(
                    position=position,
                    name=line.name,
                    code=match.code if match and match.code else line.code,
                    match_status=match.status.value if match else None,
                    match_confidence=match.confidence if match else None,
                    quantity=line.quantity,
                    unit=line.unit,
                    unit_price=line.unit_price,
                    total=line.total,
                ))
            session.add(order)
            session.flush()
            order_id = order.id

        logger.info(f"💾 Saved order {order_number} ({order_id}) with {len(result.line_items)} line(s)")
        return order_id

    def get(self, order_id: str) -> Optional[Order]:
        """Load an order with its lines"""
        with self.db.transaction() as session:
            order = session.get(Order, order_id)
            if order is not None:
                # Load lines before the session closes
                list(order.lines)
            return order
