"""
Processing event log

Records queue state transitions. Writing is best-effort: failures are
logged and never interrupt processing.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ordex.db import Database, ProcessingLog

logger = logging.getLogger(__name__)


class ProcessingLogStore:
    """Processing event log backed by the ORDEX database"""

    def __init__(self, db: Database):
        self.db = db

    async def write(self, event: str, item_id: Optional[str] = None, message: Optional[str] = None,
                    level: str = 'info', details: Optional[Dict[str, Any]] = None) -> bool:
        """
        Write an event

        Returns:
            True if written
        """
        try:
            await asyncio.to_thread(self._write, event, item_id, message, level, details)
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Could not write processing event {event}: {e}")
            return False

    def _write(self, event: str, item_id: Optional[str], message: Optional[str], level: str,
               details: Optional[Dict[str, Any]]) -> None:
        with self.db.transaction() as session:
            session.add(ProcessingLog(event=event, item_id=item_id, message=message,
                                      level=level, details=details))

    def list_events(self, item_id: Optional[str] = None) -> List[ProcessingLog]:
        """Events in write order, optionally for one item"""
        with self.db.transaction() as session:
            query = select(ProcessingLog).order_by(ProcessingLog.id)
            if item_id is not None:
                query = query.where(ProcessingLog.item_id == item_id)
            return list(session.scalars(query))
