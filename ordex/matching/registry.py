"""
Canonical Registry

Lookup and alias-learning contract used by the identifier resolver, with a
SQLAlchemy implementation over the clients/products tables. Blocking
database calls run in worker threads.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple, Type

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ordex.db import Client, ClientAlias, Database, Product, ProductAlias
from ordex.errors import RegistryUnavailableError
from ordex.models import EntityKind

logger = logging.getLogger(__name__)


class CanonicalRegistry(ABC):
    """Canonical client/product registry"""

    @abstractmethod
    async def find_by_code(self, kind: EntityKind, code: str) -> Optional[str]:
        """Return the canonical code if ``code`` exists"""
        pass

    @abstractmethod
    async def find_by_alias(self, kind: EntityKind, alias: str) -> Optional[str]:
        """Return the canonical code owning ``alias``"""
        pass

    @abstractmethod
    async def list_codes(self, kind: EntityKind) -> List[str]:
        """All canonical codes of a kind"""
        pass

    @abstractmethod
    async def add_alias(self, kind: EntityKind, alias: str, code: str) -> bool:
        """
        Record an alias for an existing code

        Returns:
            True if inserted, False if the alias was already known
        """
        pass


# kind -> (entry model, alias model, alias foreign key attribute)
_TABLES: Dict[EntityKind, Tuple[Type, Type, str]] = {
    EntityKind.CLIENT: (Client, ClientAlias, 'client_id'),
    EntityKind.PRODUCT: (Product, ProductAlias, 'product_id'),
}


class SQLRegistry(CanonicalRegistry):
    """Registry backed by the ORDEX database"""

    def __init__(self, db: Database):
        self.db = db

    async def find_by_code(self, kind: EntityKind, code: str) -> Optional[str]:
        return await self._run(self._find_by_code, kind, code)

    async def find_by_alias(self, kind: EntityKind, alias: str) -> Optional[str]:
        return await self._run(self._find_by_alias, kind, alias)

    async def list_codes(self, kind: EntityKind) -> List[str]:
        return await self._run(self._list_codes, kind)

    async def add_alias(self, kind: EntityKind, alias: str, code: str) -> bool:
        return await self._run(self._add_alias, kind, alias, code)

    async def add_entry(self, kind: EntityKind, code: str, name: Optional[str] = None) -> bool:
        """
        Add a canonical entry

        Returns:
            True if inserted, False if the code already exists
        """
        return await self._run(self._add_entry, kind, code, name)

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except SQLAlchemyError as e:
            logger.warning(f"Registry operation {func.__name__} failed: {e}")
            raise RegistryUnavailableError(str(e)) from e

    def _find_by_code(self, kind: EntityKind, code: str) -> Optional[str]:
        model, _, _ = _TABLES[kind]
        with self.db.transaction() as session:
            return session.scalar(select(model.code).where(model.code == code))

    def _find_by_alias(self, kind: EntityKind, alias: str) -> Optional[str]:
        model, alias_model, foreign_key = _TABLES[kind]
        with self.db.transaction() as session:
            return session.scalar(
                select(model.code)
                .join(alias_model, getattr(alias_model, foreign_key) == model.id)
                .where(alias_model.alias == alias)
            )

    def _list_codes(self, kind: EntityKind) -> List[str]:
        model, _, _ = _TABLES[kind]
        with self.db.transaction() as session:
            return list(session.scalars(select(model.code).order_by(model.code)))

    def _add_alias(self, kind: EntityKind, alias: str, code: str) -> bool:
        model, alias_model, foreign_key = _TABLES[kind]
        try:
            with self.db.transaction() as session:
                entry_id = session.scalar(select(model.id).where(model.code == code))
                if entry_id is None:
                    raise RegistryUnavailableError(f"Unknown {kind.value} code: {code}")
                session.add(alias_model(alias=alias, **{foreign_key: entry_id}))
        except IntegrityError:
            logger.debug(f"{kind.value} alias '{alias}' already known")
            return False
        logger.info(f"📝 Learned {kind.value} alias '{alias}' -> {code}")
        return True

    def _add_entry(self, kind: EntityKind, code: str, name: Optional[str]) -> bool:
        model, _, _ = _TABLES[kind]
        try:
            with self.db.transaction() as session:
                session.add(model(code=code, name=name))
        except IntegrityError:
            return False
        return True
