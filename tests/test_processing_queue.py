"""
Tests for ProcessingQueue
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from ordex.classification import ContentDetector
from ordex.errors import AllProvidersExhaustedError
from ordex.jobs import ProcessingQueue, QueueConfig, QueueItemStatus
from ordex.models import Attachment, Channel, ContentType, ExtractionResult, IngestedItem, LineItem
from ordex.stores import ProcessingLogStore


def _result():
    return ExtractionResult(
        order_number="A-1",
        customer="Bar Pepe",
        line_items=[LineItem(name="ACEITE", quantity=2, unit_price=3.0, total=6.0)],
        order_total=6.0,
        confidence=1.0,
        method="gemini",
    )


def _exhausted():
    return AllProvidersExhaustedError({'gemini': 2, 'openai': 1}, [])


class QueueHarness:
    """Queue wired to mock collaborators"""

    def __init__(self, extract_side_effect=None, log_store=None, **config):
        self.extractor = Mock()
        self.extractor.extract = AsyncMock(side_effect=extract_side_effect, return_value=_result())
        self.resolver = Mock()
        self.resolver.enrich_order = AsyncMock(side_effect=lambda result: result)
        self.order_store = Mock()
        self.order_store.save = AsyncMock(return_value="order-1")
        self.notifier = Mock()
        self.notifier.notify_success = AsyncMock()
        self.notifier.notify_failure = AsyncMock()
        config.setdefault('retry_delay', 0.01)
        self.queue = ProcessingQueue(
            self.extractor,
            self.resolver,
            self.order_store,
            notifier=self.notifier,
            log_store=log_store,
            config=QueueConfig(**config),
        )

    async def submit(self, item):
        return await self.queue.enqueue(item, ContentDetector.detect(item))


class TestProcessingQueue:
    """Tests for queue processing"""

    @pytest.mark.asyncio
    async def test_successful_item(self):
        harness = QueueHarness()
        item = IngestedItem(body="Pedido: 2 aceite, total 6 €", channel=Channel.TELEGRAM)

        item_id = await harness.submit(item)
        await harness.queue.join()

        queue_item = harness.queue.get_item(item_id)
        assert queue_item.status == QueueItemStatus.COMPLETED
        assert queue_item.attempts == 1
        assert queue_item.order_id == "order-1"
        harness.resolver.enrich_order.assert_awaited_once()
        harness.order_store.save.assert_awaited_once()
        harness.notifier.notify_success.assert_awaited_once_with(item_id, item, "order-1", queue_item.result)

        content = harness.extractor.extract.call_args.args[1]
        assert content.text == "Pedido: 2 aceite, total 6 €"

    @pytest.mark.asyncio
    async def test_email_subject_is_prepended(self):
        harness = QueueHarness()
        item = IngestedItem(body="2 aceite", subject="Pedido semanal", channel=Channel.MAILHOOK)

        await harness.submit(item)
        await harness.queue.join()

        content = harness.extractor.extract.call_args.args[1]
        assert content.text.startswith("Subject: Pedido semanal")

    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(self):
        """Test two failures followed by success complete on the third attempt"""
        harness = QueueHarness(extract_side_effect=[_exhausted(), _exhausted(), _result()])

        item_id = await harness.submit(IngestedItem(body="Pedido de aceite"))
        await harness.queue.join()

        queue_item = harness.queue.get_item(item_id)
        assert queue_item.status == QueueItemStatus.COMPLETED
        assert queue_item.attempts == 3
        assert harness.extractor.extract.await_count == 3
        assert harness.queue.get_status()['retries'] == 2
        harness.notifier.notify_failure.assert_not_called()

    @pytest.mark.asyncio
    async def test_permanent_failure(self):
        """Test an item failing every attempt is failed and reported once"""
        harness = QueueHarness(extract_side_effect=_exhausted())
        item = IngestedItem(body="Pedido de aceite")

        item_id = await harness.submit(item)
        await harness.queue.join()

        queue_item = harness.queue.get_item(item_id)
        assert queue_item.status == QueueItemStatus.FAILED
        assert queue_item.attempts == 3
        assert "All text processing providers failed" in queue_item.last_error
        harness.order_store.save.assert_not_called()
        harness.notifier.notify_failure.assert_awaited_once()
        args = harness.notifier.notify_failure.call_args.args
        assert args[0] == item_id
        assert args[3] == 3

    @pytest.mark.asyncio
    async def test_not_processable_is_not_retried(self):
        """Test empty content fails on the first attempt without extraction"""
        harness = QueueHarness()

        item_id = await harness.submit(IngestedItem(body="   "))
        await harness.queue.join()

        queue_item = harness.queue.get_item(item_id)
        assert queue_item.status == QueueItemStatus.FAILED
        assert queue_item.attempts == 1
        assert "empty" in queue_item.last_error.lower()
        harness.extractor.extract.assert_not_called()

    @pytest.mark.asyncio
    async def test_attachment_without_file_is_not_processable(self):
        harness = QueueHarness()
        item = IngestedItem(attachments=[Attachment(name="pedido.pdf", media_type="application/pdf")])

        item_id = await harness.submit(item)
        await harness.queue.join()

        assert harness.queue.get_item(item_id).attempts == 1
        harness.extractor.extract.assert_not_called()

    @pytest.mark.asyncio
    async def test_priority_ordering(self):
        """Test higher-priority content is processed before earlier, lower-priority items"""
        processed = []

        async def record(classification, content):
            processed.append(classification.primary_type)
            return _result()

        harness = QueueHarness(extract_side_effect=record, max_concurrent=1)

        await harness.submit(IngestedItem(body="hola, buenos días"))
        await harness.submit(IngestedItem(body="otra consulta general"))
        await harness.submit(IngestedItem(attachments=[
            Attachment(name="pedido.pdf", media_type="application/pdf", storage_path="/data/pedido.pdf")
        ]))
        await harness.queue.join()

        assert processed == [ContentType.GENERAL_TEXT, ContentType.PDF, ContentType.GENERAL_TEXT]

    @pytest.mark.asyncio
    async def test_status(self):
        harness = QueueHarness(max_concurrent=2)
        status = harness.queue.get_status()
        assert status['queue_length'] == 0
        assert status['running'] is False
        assert status['max_concurrent'] == 2

        await harness.submit(IngestedItem(body="Pedido de aceite"))
        await harness.submit(IngestedItem(body="   "))
        await harness.queue.join()

        status = harness.queue.get_status()
        assert status['completed'] == 1
        assert status['failed'] == 1
        assert status['total'] == 2
        assert status['active'] == 0

    @pytest.mark.asyncio
    async def test_events_are_logged(self, db):
        """Test queue transitions are written to the processing log"""
        log_store = ProcessingLogStore(db)
        harness = QueueHarness(extract_side_effect=[_exhausted(), _result()], log_store=log_store)

        item_id = await harness.submit(IngestedItem(body="Pedido de aceite"))
        await harness.queue.join()

        events = [event.event for event in log_store.list_events(item_id)]
        assert events == [
            'queue_item_started',
            'queue_item_failed',
            'queue_item_retry_scheduled',
            'queue_item_started',
            'queue_item_completed',
        ]

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        """Test no more than max_concurrent items are extracted at once"""
        in_flight = 0
        peak = 0

        async def slow_extract(classification, content):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.02)
            in_flight -= 1
            return _result()

        harness = QueueHarness(extract_side_effect=slow_extract, max_concurrent=2)

        for n in range(6):
            await harness.submit(IngestedItem(body=f"Pedido {n}: 2 aceite"))
        assert harness.queue.get_status()['active'] == 2
        assert harness.queue.get_status()['queue_length'] == 4
        await harness.queue.join()

        assert peak == 2
        assert harness.queue.get_status()['completed'] == 6

    @pytest.mark.asyncio
    async def test_equal_priority_runs_in_arrival_order(self):
        """Test items of the same priority waiting together keep their arrival order"""
        release = asyncio.Event()
        processed = []

        async def record(classification, content):
            processed.append(content.text or content.file_path)
            if content.text == "bloqueo":
                await release.wait()
            return _result()

        harness = QueueHarness(extract_side_effect=record, max_concurrent=1)

        await harness.submit(IngestedItem(body="bloqueo"))
        for body in ("primera consulta", "segunda consulta", "tercera consulta"):
            await harness.submit(IngestedItem(body=body))
        await harness.submit(IngestedItem(attachments=[
            Attachment(name="pedido.pdf", media_type="application/pdf", storage_path="/data/pedido.pdf")
        ]))
        release.set()
        await harness.queue.join()

        assert processed == [
            "bloqueo",
            "/data/pedido.pdf",
            "primera consulta",
            "segunda consulta",
            "tercera consulta",
        ]

    @pytest.mark.asyncio
    async def test_item_waiting_for_retry_is_pending(self):
        harness = QueueHarness(extract_side_effect=[_exhausted(), _result()], retry_delay=0.2)

        item_id = await harness.submit(IngestedItem(body="Pedido de aceite"))
        for _ in range(100):
            if harness.queue.get_status()['scheduled_retries']:
                break
            await asyncio.sleep(0.005)

        queue_item = harness.queue.get_item(item_id)
        assert queue_item.status == QueueItemStatus.PENDING
        assert queue_item.attempts == 1
        assert harness.queue.get_status()['queue_length'] == 0

        await harness.queue.join()
        assert queue_item.status == QueueItemStatus.COMPLETED
        assert {status.value for status in QueueItemStatus} == {"PENDING", "PROCESSING", "COMPLETED", "FAILED"}
