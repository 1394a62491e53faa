"""
Tests for SQLOrderStore and ProcessingLogStore
"""

from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from ordex.errors import PersistenceError
from ordex.models import (
    CanonicalMatch,
    Channel,
    ExtractionResult,
    IngestedItem,
    LineItem,
    MatchStatus,
    ValidationWarning,
)
from ordex.stores import ProcessingLogStore, SQLOrderStore


class TestSQLOrderStore:
    """Tests for order persistence"""

    @pytest.mark.asyncio
    async def test_save_with_matches(self, db):
        store = SQLOrderStore(db)
        result = ExtractionResult(
            order_number="01/240053",
            customer="Bar Pepe S.L.",
            customer_code="BAR_PEPE_S_L",
            date="2024-03-15",
            line_items=[
                LineItem(name="ACEITE OLIVA", code="X1", quantity=10, unit="litro", unit_price=2.5, total=25.0,
                         match=CanonicalMatch(code="ACE01", status=MatchStatus.ALIAS, confidence=1.0)),
                LineItem(name="PEPINO", code="PEP", quantity=1, unit_price=1.0, total=1.0,
                         match=CanonicalMatch.unmatched()),
            ],
            order_total=26.0,
            confidence=1.0,
            method="gemini",
            customer_match=CanonicalMatch(code="BAR_PEPE", status=MatchStatus.EXACT, confidence=1.0),
        )
        item = IngestedItem(body="pedido", channel=Channel.TELEGRAM, sender="+34600000000")
        warning = ValidationWarning(field="order_total", message="mismatch", code="total_mismatch")

        order_id = await store.save(result, item, [warning])
        order = store.get(order_id)

        assert order.order_number == "01/240053"
        assert order.customer_code == "BAR_PEPE"
        assert order.customer_match_status == "exact"
        assert order.order_date == "2024-03-15"
        assert order.channel == "telegram"
        assert order.sender == "+34600000000"
        assert order.warnings[0]['code'] == "total_mismatch"

        lines = sorted(order.lines, key=lambda line: line.position)
        assert [line.code for line in lines] == ["ACE01", "PEP"]
        assert lines[0].match_status == "alias"
        assert lines[1].match_status == "unmatched"
        assert lines[0].total == pytest.approx(25.0)

    @pytest.mark.asyncio
    async def test_placeholders_for_missing_details(self, db):
        """Test missing number, customer and date are filled in on save"""
        store = SQLOrderStore(db)

        order_id = await store.save(ExtractionResult(), IngestedItem(body="x"))
        order = store.get(order_id)

        assert order.order_number.startswith("AUTO-")
        assert order.customer == "unknown"
        assert order.order_date == date.today().isoformat()
        assert order.lines == []
        assert order.warnings is None

    @pytest.mark.asyncio
    async def test_database_errors_become_persistence_errors(self, db):
        store = SQLOrderStore(db)

        with patch.object(SQLOrderStore, '_save', side_effect=OperationalError("INSERT", {}, Exception("locked"))):
            with pytest.raises(PersistenceError):
                await store.save(ExtractionResult(), IngestedItem(body="x"))

    def test_get_unknown_order(self, db):
        assert SQLOrderStore(db).get("missing") is None


class TestProcessingLogStore:
    """Tests for the processing event log"""

    @pytest.mark.asyncio
    async def test_write_and_list(self, db):
        store = ProcessingLogStore(db)

        assert await store.write('queue_item_started', item_id='a', details={'attempt': 1})
        assert await store.write('queue_item_failed', item_id='a', level='warning', message='boom')
        assert await store.write('queue_item_started', item_id='b')

        events = store.list_events('a')
        assert [e.event for e in events] == ['queue_item_started', 'queue_item_failed']
        assert events[0].details == {'attempt': 1}
        assert events[1].level == 'warning'
        assert len(store.list_events()) == 3

    @pytest.mark.asyncio
    async def test_write_failure_is_reported(self, db):
        """Test a failing write returns False instead of raising"""
        store = ProcessingLogStore(db)

        with patch.object(ProcessingLogStore, '_write', side_effect=OperationalError("INSERT", {}, Exception("x"))):
            assert await store.write('queue_item_started') is False
