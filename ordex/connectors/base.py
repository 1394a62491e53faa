"""
Base Notifier

Notifications tell the originating channel how an ingested item ended:
saved as an order, or failed for good. Delivery is best-effort; a notifier
reports failure through its NotificationResult and never raises into the
processing queue.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ordex.models import ExtractionResult, IngestedItem

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    """Result of a notification attempt"""
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    delivered_at: Optional[datetime] = None


def build_success_payload(item_id: str, item: IngestedItem, order_id: str,
                          result: ExtractionResult) -> Dict[str, Any]:
    return {
        'event': 'order_saved',
        'item_id': item_id,
        'order_id': order_id,
        'channel': item.channel.value,
        'chat_id': item.chat_id,
        'sender': item.sender,
        'order_number': result.order_number,
        'customer': result.customer,
        'customer_code': result.customer_match.code if result.customer_match else None,
        'line_items': len(result.line_items),
        'order_total': result.order_total,
        'confidence': result.confidence,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


def build_failure_payload(item_id: str, item: IngestedItem, error: str, attempts: int) -> Dict[str, Any]:
    return {
        'event': 'order_failed',
        'item_id': item_id,
        'channel': item.channel.value,
        'chat_id': item.chat_id,
        'sender': item.sender,
        'error': error,
        'attempts': attempts,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


class BaseNotifier(ABC):
    """Abstract notifier"""

    @abstractmethod
    async def send(self, payload: Dict[str, Any]) -> NotificationResult:
        """Deliver a notification payload"""
        pass

    async def notify_success(self, item_id: str, item: IngestedItem, order_id: str,
                             result: ExtractionResult) -> NotificationResult:
        """Notify that an item was saved as an order"""
        return await self._safe_send(build_success_payload(item_id, item, order_id, result))

    async def notify_failure(self, item_id: str, item: IngestedItem, error: str,
                             attempts: int) -> NotificationResult:
        """Notify that an item failed permanently"""
        return await self._safe_send(build_failure_payload(item_id, item, error, attempts))

    async def _safe_send(self, payload: Dict[str, Any]) -> NotificationResult:
        try:
            return await self.send(payload)
        except Exception as e:
            logger.exception(f"Notification {payload.get('event')} for {payload.get('item_id')} failed: {e}")
            return NotificationResult(success=False, error=str(e))


class LoggingNotifier(BaseNotifier):
    """Writes notifications to the log; the default when no webhook is configured"""

    async def send(self, payload: Dict[str, Any]) -> NotificationResult:
        if payload.get('event') == 'order_failed':
            logger.warning(
                f"📣 Item {payload['item_id']} ({payload['channel']}) failed after "
                f"{payload['attempts']} attempt(s): {payload['error']}"
            )
        else:
            logger.info(
                f"📣 Item {payload['item_id']} ({payload['channel']}) saved as order "
                f"{payload['order_id']} with {payload['line_items']} line item(s)"
            )
        return NotificationResult(success=True, delivered_at=datetime.now(timezone.utc))
