"""
Meta Store

Key-value persistence for meta entries. MetaStore is the interface the
service depends on; SqlAlchemyMetaStore implements it on the
meta_entries table.

Write methods report failure with a falsy result instead of raising so the
service can map it to a typed StoreFailure. Updates are plain writes by
entry id: there is no compare-and-swap, two concurrent updates of the same
entry race and the last one wins.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from meta_api.constants.meta import EntityType
from meta_api.models.meta import MetaEntryRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetaEntry:
    """One stored meta value."""

    entry_id: int
    entity_type: EntityType
    entity_id: int
    key: str
    value: Any


class MetaStore(ABC):
    """Persistence interface for meta entries."""

    async def get(self, entity_type: EntityType, entity_id: int, key: str, single: bool) -> Any:
        """
        Return the stored value(s) for *key* on a parent.

        single=True returns the first value or None; otherwise a list of
        every value in insertion order.
        """
        entries = await self.list_entries(entity_type, entity_id, key)
        if single:
            return entries[0].value if entries else None
        return [entry.value for entry in entries]

    @abstractmethod
    async def list_entries(self, entity_type: EntityType, entity_id: int, key: str) -> list[MetaEntry]:
        """Return every entry for *key* on a parent, oldest first."""

    @abstractmethod
    async def get_by_entry_id(self, entity_type: EntityType, entry_id: int) -> MetaEntry | None:
        """Return the entry with *entry_id*, or None."""

    @abstractmethod
    async def add(self, entity_type: EntityType, entity_id: int, key: str, value: Any) -> int | None:
        """Store a new entry and return its id, or None on failure."""

    @abstractmethod
    async def update_by_entry_id(
        self, entity_type: EntityType, entry_id: int, value: Any, key: str | None = None
    ) -> bool:
        """Overwrite an entry's value (and key, when given)."""

    @abstractmethod
    async def delete_by_entry_id(self, entity_type: EntityType, entry_id: int) -> bool:
        """Remove one entry."""

    @abstractmethod
    async def delete_by_key(
        self, entity_type: EntityType, key: str, value: Any = None, entity_id: int | None = None
    ) -> int:
        """
        Remove entries with *key*, optionally only those equal to *value*
        and/or belonging to *entity_id*. Returns the number removed, or -1
        on failure.
        """


def _to_entry(row: MetaEntryRow) -> MetaEntry:
    return MetaEntry(
        entry_id=row.id,
        entity_type=EntityType(row.entity_type),
        entity_id=row.entity_id,
        key=row.meta_key,
        value=row.meta_value,
    )


class SqlAlchemyMetaStore(MetaStore):
    """MetaStore backed by the meta_entries table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_entries(self, entity_type: EntityType, entity_id: int, key: str) -> list[MetaEntry]:
        result = await self.db.execute(
            select(MetaEntryRow)
            .where(
                MetaEntryRow.entity_type == EntityType(entity_type).value,
                MetaEntryRow.entity_id == entity_id,
                MetaEntryRow.meta_key == key,
            )
            .order_by(MetaEntryRow.id)
        )
        return [_to_entry(row) for row in result.scalars().all()]

    async def get_by_entry_id(self, entity_type: EntityType, entry_id: int) -> MetaEntry | None:
        row = await self._get_row(entity_type, entry_id)
        return _to_entry(row) if row else None

    async def add(self, entity_type: EntityType, entity_id: int, key: str, value: Any) -> int | None:
        row = MetaEntryRow(
            entity_type=EntityType(entity_type).value,
            entity_id=entity_id,
            meta_key=key,
            meta_value=value,
        )
        try:
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to add meta %s for %s %s: %s", key, entity_type, entity_id, e)
            return None

        logger.info(
            "Added meta entry %d",
            row.id,
            extra={"entity_type": row.entity_type, "entity_id": entity_id, "meta_key": key},
        )
        return row.id

    async def update_by_entry_id(
        self, entity_type: EntityType, entry_id: int, value: Any, key: str | None = None
    ) -> bool:
        """
        Overwrite the entry's value (and key, when given).

        There is no compare-and-swap: two concurrent updates of the same
        entry both succeed and the last commit wins.
        """
        row = await self._get_row(entity_type, entry_id)
        if row is None:
            return False

        row.meta_value = value
        if key is not None:
            row.meta_key = key
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to update meta entry %d: %s", entry_id, e)
            return False

        logger.info("Updated meta entry %d", entry_id, extra={"entry_id": entry_id, "meta_key": row.meta_key})
        return True

    async def delete_by_entry_id(self, entity_type: EntityType, entry_id: int) -> bool:
        row = await self._get_row(entity_type, entry_id)
        if row is None:
            return False
        try:
            await self.db.delete(row)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to delete meta entry %d: %s", entry_id, e)
            return False

        logger.info("Deleted meta entry %d", entry_id, extra={"entry_id": entry_id})
        return True

    async def delete_by_key(
        self, entity_type: EntityType, key: str, value: Any = None, entity_id: int | None = None
    ) -> int:
        query = select(MetaEntryRow).where(
            MetaEntryRow.entity_type == EntityType(entity_type).value,
            MetaEntryRow.meta_key == key,
        )
        if entity_id is not None:
            query = query.where(MetaEntryRow.entity_id == entity_id)

        result = await self.db.execute(query)
        # JSON values are compared in Python; JSON equality in SQL is dialect specific
        ids = [row.id for row in result.scalars().all() if value is None or row.meta_value == value]
        if not ids:
            return 0

        try:
            await self.db.execute(delete(MetaEntryRow).where(MetaEntryRow.id.in_(ids)))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to delete meta %s entries: %s", key, e)
            return -1

        logger.info("Deleted %d meta entries with key %s", len(ids), key, extra={"meta_key": key})
        return len(ids)

    async def _get_row(self, entity_type: EntityType, entry_id: int) -> MetaEntryRow | None:
        row = await self.db.get(MetaEntryRow, entry_id)
        if row is None or row.entity_type != EntityType(entity_type).value:
            return None
        return row
