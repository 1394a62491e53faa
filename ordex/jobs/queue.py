"""
Processing Queue

In-process priority queue that drives classified items through extraction,
validation, identifier resolution and persistence.
Supports:
- Priority ordering (lower number first, then arrival order)
- Concurrency bound
- Fixed-delay retries up to a maximum number of attempts
- Best-effort notifications and processing event log
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set
from uuid import uuid4

from ordex.classification import ContentDetector
from ordex.connectors import BaseNotifier, LoggingNotifier
from ordex.errors import NotProcessableError
from ordex.matching import IdentifierResolver
from ordex.models import (
    Channel,
    Classification,
    ContentOrigin,
    ExtractionResult,
    IngestedItem,
    ProviderInput,
    ValidationWarning,
)
from ordex.processors.order import ExtractionOrchestrator, OrderValidator
from ordex.stores import OrderStore, ProcessingLogStore

logger = logging.getLogger(__name__)

EMAIL_CHANNELS = {Channel.MAILHOOK, Channel.OUTLOOK}


class QueueItemStatus(str, Enum):
    """Queue item status"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class QueueConfig:
    """Queue configuration"""
    max_concurrent: int = 3
    max_attempts: int = 3
    retry_delay: float = 5.0  # seconds

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QueueConfig':
        return cls(
            max_concurrent=int(data.get('max_concurrent', cls.max_concurrent)),
            max_attempts=int(data.get('max_attempts', cls.max_attempts)),
            retry_delay=float(data.get('retry_delay', cls.retry_delay)),
        )


_sequence = itertools.count(1)


@dataclass
class QueueItem:
    """Tracked queue entry"""
    item: IngestedItem
    classification: Classification
    priority: int
    id: str = field(default_factory=lambda: str(uuid4()))
    sequence: int = field(default_factory=lambda: next(_sequence))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: QueueItemStatus = QueueItemStatus.PENDING
    attempts: int = 0
    last_error: Optional[str] = None
    order_id: Optional[str] = None
    result: Optional[ExtractionResult] = None
    warnings: List[ValidationWarning] = field(default_factory=list)
    completed_at: Optional[datetime] = None

    @property
    def sort_key(self):
        return (self.priority, self.sequence)


class ProcessingQueue:
    """
    Priority processing queue.

    Usage:
        queue = ProcessingQueue(extractor, resolver, order_store, notifier=notifier)
        item_id = await queue.enqueue(item, classification)
        await queue.join()
    """

    def __init__(
        self,
        extractor: ExtractionOrchestrator,
        resolver: IdentifierResolver,
        order_store: OrderStore,
        notifier: Optional[BaseNotifier] = None,
        log_store: Optional[ProcessingLogStore] = None,
        validator: Optional[OrderValidator] = None,
        config: Optional[QueueConfig] = None,
    ):
        self.extractor = extractor
        self.resolver = resolver
        self.order_store = order_store
        self.notifier = notifier or LoggingNotifier()
        self.log_store = log_store
        self.validator = validator or OrderValidator()
        self.config = config or QueueConfig()

        self._pending: List[QueueItem] = []
        self._items: Dict[str, QueueItem] = {}
        self._active: Set[str] = set()
        self._waiting_retry: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._idle: Optional[asyncio.Event] = None

        # Metrics
        self._completed_count = 0
        self._failed_count = 0
        self._retry_count = 0

    async def enqueue(self, item: IngestedItem, classification: Classification) -> str:
        """
        Add a classified item to the queue

        Args:
            item: Ingested item
            classification: Its classification

        Returns:
            Queue item ID
        """
        queue_item = QueueItem(
            item=item,
            classification=classification,
            priority=ContentDetector.get_priority(classification),
        )
        self._items[queue_item.id] = queue_item
        self._insert(queue_item)

        logger.info(
            f"📥 Queued item {queue_item.id} ({classification.primary_type.value if classification.primary_type else 'none'}, "
            f"priority {queue_item.priority}), {len(self._pending)} pending"
        )
        self._dispatch()
        return queue_item.id

    def get_status(self) -> Dict[str, Any]:
        """Queue status snapshot"""
        return {
            'queue_length': len(self._pending),
            'active': len(self._active),
            'max_concurrent': self.config.max_concurrent,
            'running': bool(self._active),
            'scheduled_retries': len(self._waiting_retry),
            'completed': self._completed_count,
            'failed': self._failed_count,
            'retries': self._retry_count,
            'total': len(self._items),
        }

    def get_item(self, item_id: str) -> Optional[QueueItem]:
        """Get a tracked queue item"""
        return self._items.get(item_id)

    async def join(self) -> None:
        """Wait until nothing is pending, running or waiting for a retry"""
        await self._idle_event().wait()

    def _idle_event(self) -> asyncio.Event:
        if self._idle is None:
            self._idle = asyncio.Event()
            self._update_idle()
        return self._idle

    def _update_idle(self) -> None:
        if self._idle is None:
            return
        if self._pending or self._active or self._waiting_retry:
            self._idle.clear()
        else:
            self._idle.set()

    def _insert(self, queue_item: QueueItem) -> None:
        queue_item.status = QueueItemStatus.PENDING
        self._pending.append(queue_item)
        self._pending.sort(key=lambda q: q.sort_key)
        self._update_idle()

    def _dispatch(self) -> None:
        while self._pending and len(self._active) < self.config.max_concurrent:
            queue_item = self._pending.pop(0)
            self._active.add(queue_item.id)
            self._spawn(self._run(queue_item))
        self._update_idle()

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, queue_item: QueueItem) -> None:
        try:
            await self._process_item(queue_item)
        finally:
            self._active.discard(queue_item.id)
            self._dispatch()

    async def _process_item(self, queue_item: QueueItem) -> None:
        queue_item.attempts += 1
        queue_item.status = QueueItemStatus.PROCESSING
        logger.info(f"⚙️ Processing item {queue_item.id} (attempt {queue_item.attempts}/{self.config.max_attempts})")
        await self._log_event('queue_item_started', queue_item, f"Attempt {queue_item.attempts}")

        try:
            await self._execute(queue_item)
        except NotProcessableError as e:
            await self._fail(queue_item, str(e))
            return
        except Exception as e:
            error = str(e) or type(e).__name__
            queue_item.last_error = error
            if queue_item.attempts < self.config.max_attempts:
                await self._schedule_retry(queue_item, error)
            else:
                await self._fail(queue_item, error)
            return

        queue_item.status = QueueItemStatus.COMPLETED
        queue_item.completed_at = datetime.now(timezone.utc)
        self._completed_count += 1
        logger.info(f"✅ Item {queue_item.id} saved as order {queue_item.order_id}")
        await self._log_event('queue_item_completed', queue_item, f"Order {queue_item.order_id}",
                              details={'order_id': queue_item.order_id,
                                       'confidence': queue_item.result.confidence,
                                       'method': queue_item.result.method,
                                       'warnings': len(queue_item.warnings)})
        await self.notifier.notify_success(queue_item.id, queue_item.item, queue_item.order_id, queue_item.result)

    async def _execute(self, queue_item: QueueItem) -> None:
        processable, reason = ContentDetector.is_processable(queue_item.classification)
        if not processable:
            raise NotProcessableError(reason)

        content = self._prepare_content(queue_item)
        result = await self.extractor.extract(queue_item.classification, content)
        warnings = self.validator.validate(result)
        enriched = await self.resolver.enrich_order(result)

        queue_item.order_id = await self.order_store.save(enriched, queue_item.item, warnings)
        queue_item.result = enriched
        queue_item.warnings = warnings

    def _prepare_content(self, queue_item: QueueItem) -> ProviderInput:
        """Build provider input from the channel payload"""
        item = queue_item.item
        primary = queue_item.classification.primary

        if primary.origin == ContentOrigin.ATTACHMENT:
            if primary.index is None or primary.index >= len(item.attachments):
                raise NotProcessableError("attachment is missing from the item")
            attachment = item.attachments[primary.index]
            if not attachment.storage_path:
                raise NotProcessableError(f"attachment '{attachment.name}' has no stored file")
            return ProviderInput(
                file_path=attachment.storage_path,
                media_type=attachment.media_type or None,
                filename=attachment.name or None,
            )

        if primary.origin == ContentOrigin.URL:
            return ProviderInput(url=primary.url or item.url)

        text = item.body or ''
        if item.channel in EMAIL_CHANNELS and item.subject:
            text = f"Subject: {item.subject}\n\n{text}"
        return ProviderInput(text=text, url=primary.url)

    async def _schedule_retry(self, queue_item: QueueItem, error: str) -> None:
        queue_item.status = QueueItemStatus.PENDING
        self._retry_count += 1
        self._waiting_retry.add(queue_item.id)
        logger.warning(
            f"🔄 Item {queue_item.id} failed (attempt {queue_item.attempts}/{self.config.max_attempts}), "
            f"retrying in {self.config.retry_delay}s: {error}"
        )
        await self._log_event('queue_item_failed', queue_item, error, level='warning')
        await self._log_event('queue_item_retry_scheduled', queue_item,
                              f"Retry in {self.config.retry_delay}s", level='warning')
        self._spawn(self._retry_after_delay(queue_item))

    async def _retry_after_delay(self, queue_item: QueueItem) -> None:
        try:
            await asyncio.sleep(self.config.retry_delay)
        finally:
            self._waiting_retry.discard(queue_item.id)
        self._insert(queue_item)
        self._dispatch()

    async def _fail(self, queue_item: QueueItem, error: str) -> None:
        queue_item.status = QueueItemStatus.FAILED
        queue_item.last_error = error
        queue_item.completed_at = datetime.now(timezone.utc)
        self._failed_count += 1
        logger.error(f"❌ Item {queue_item.id} failed permanently after {queue_item.attempts} attempt(s): {error}")
        await self._log_event('queue_item_failed_permanently', queue_item, error, level='error')
        await self.notifier.notify_failure(queue_item.id, queue_item.item, error, queue_item.attempts)

    async def _log_event(self, event: str, queue_item: QueueItem, message: Optional[str] = None,
                         level: str = 'info', details: Optional[Dict[str, Any]] = None) -> None:
        if self.log_store is None:
            return
        payload = {'attempt': queue_item.attempts, 'priority': queue_item.priority,
                   'channel': queue_item.item.channel.value}
        payload.update(details or {})
        await self.log_store.write(event, item_id=queue_item.id, message=message, level=level, details=payload)
