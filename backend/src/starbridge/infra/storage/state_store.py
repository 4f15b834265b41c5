"""Record store used by the command layer.

Presents ORM tables as plain dict records addressed by table name so the
command handlers never build SQL themselves. Every call opens and commits
its own session; nothing is held open between calls. Writes that must land
together go through :meth:`StateStore.update_many`.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from starbridge.db.base import BaseModel, new_id
from starbridge.db.connection import DatabaseManager
from starbridge.models import (
    Campaign,
    Contact,
    CrewCondition,
    CrewHealth,
    CrewWound,
    FuelSource,
    Order,
    Passenger,
    PassengerDemand,
    PlayerSlot,
    Ship,
    ShipLogEntry,
    Transmission,
)

logger = logging.getLogger(__name__)

TABLES: Dict[str, Type[BaseModel]] = {
    "campaigns": Campaign,
    "player_slots": PlayerSlot,
    "ships": Ship,
    "contacts": Contact,
    "orders": Order,
    "transmissions": Transmission,
    "ship_log": ShipLogEntry,
    "fuel_sources": FuelSource,
    "crew_health": CrewHealth,
    "crew_wounds": CrewWound,
    "crew_conditions": CrewCondition,
    "passengers": Passenger,
    "passenger_demands": PassengerDemand,
}

_PROTECTED_COLUMNS = ("id", "created_at", "updated_at")

RecordUpdate = Tuple[str, str, Dict[str, Any]]


class UnknownTableError(KeyError):
    pass


class StateStore:
    """get/query/insert/update/delete over named tables.

    Records go in and come out as plain dicts keyed by column name. Nested
    JSON columns are deep-copied both ways, so callers may mutate what they
    receive without touching ORM state.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    @staticmethod
    def _model(table: str) -> Type[BaseModel]:
        try:
            return TABLES[table]
        except KeyError:
            raise UnknownTableError(table) from None

    @staticmethod
    def _record(row: BaseModel) -> Dict[str, Any]:
        # Callers may mutate nested JSON freely; never hand out ORM-owned objects
        return copy.deepcopy(row.to_dict())

    @staticmethod
    def _apply(row: BaseModel, changes: Dict[str, Any]) -> None:
        for column, value in changes.items():
            if column in _PROTECTED_COLUMNS:
                continue
            setattr(row, column, copy.deepcopy(value))

    def _filtered(self, model: Type[BaseModel], filters: Dict[str, Any]):
        stmt = select(model)
        for column, value in filters.items():
            attr = getattr(model, column)
            stmt = stmt.where(attr.is_(None) if value is None else attr == value)
        return stmt

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Get one record by primary key.

        Args:
            table: Table name, one of :data:`TABLES`
            record_id: Primary key

        Returns:
            Record dict if found, None otherwise
        """
        model = self._model(table)
        try:
            async with self.db_manager.get_async_session() as session:
                row = await session.get(model, record_id)
                return self._record(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error("Failed to get %s/%s: %s", table, record_id, e)
            raise

    async def query(
        self,
        table: str,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        **filters: Any,
    ) -> List[Dict[str, Any]]:
        """List records matching every equality filter.

        Args:
            table: Table name
            order_by: Optional column to sort on
            descending: Sort newest/largest first
            limit: Optional maximum number of records
            **filters: Column equality filters; a None value matches NULL

        Returns:
            Matching records, possibly empty
        """
        model = self._model(table)
        stmt = self._filtered(model, filters)
        if order_by:
            column = getattr(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            async with self.db_manager.get_async_session() as session:
                result = await session.execute(stmt)
                return [self._record(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("Failed to query %s with %s: %s", table, filters, e)
            raise

    async def count(self, table: str, **filters: Any) -> int:
        model = self._model(table)
        stmt = select(func.count()).select_from(self._filtered(model, filters).subquery())
        try:
            async with self.db_manager.get_async_session() as session:
                return int((await session.execute(stmt)).scalar_one())
        except SQLAlchemyError as e:
            logger.error("Failed to count %s with %s: %s", table, filters, e)
            raise

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record, generating an id when none is supplied.

        Args:
            table: Table name
            record: Column values; omitted columns take model defaults

        Returns:
            The stored record, defaults and timestamps filled in
        """
        model = self._model(table)
        values = dict(record)
        values.setdefault("id", new_id())
        try:
            async with self.db_manager.get_async_session() as session:
                row = model(**values)
                session.add(row)
                await session.commit()
                await session.refresh(row)
                logger.debug("Inserted %s/%s", table, row.id)
                return self._record(row)
        except SQLAlchemyError as e:
            logger.error("Failed to insert into %s: %s", table, e)
            raise

    async def update(self, table: str, record_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply ``changes`` to one record in one commit.

        Args:
            table: Table name
            record_id: Primary key
            changes: Column values to set; id and timestamps are ignored

        Returns:
            The updated record, or None if it does not exist
        """
        model = self._model(table)
        try:
            async with self.db_manager.get_async_session() as session:
                row = await session.get(model, record_id)
                if row is None:
                    return None
                self._apply(row, changes)
                await session.commit()
                await session.refresh(row)
                return self._record(row)
        except SQLAlchemyError as e:
            logger.error("Failed to update %s/%s: %s", table, record_id, e)
            raise

    async def update_many(self, updates: Sequence[RecordUpdate]) -> Optional[List[Dict[str, Any]]]:
        """Apply several updates in a single transaction.

        Either every update lands or none does: a missing record or a
        database error rolls the whole batch back.

        Args:
            updates: ``(table, record_id, changes)`` triples, applied in order

        Returns:
            Updated records in the same order, or None if any record is missing
        """
        try:
            async with self.db_manager.get_async_session() as session:
                rows = []
                for table, record_id, changes in updates:
                    row = await session.get(self._model(table), record_id)
                    if row is None:
                        await session.rollback()
                        logger.warning("Batch update aborted: %s/%s not found", table, record_id)
                        return None
                    self._apply(row, changes)
                    rows.append(row)
                await session.commit()
                for row in rows:
                    await session.refresh(row)
                return [self._record(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error("Failed batch update of %d records: %s", len(updates), e)
            raise

    async def delete(self, table: str, record_id: str) -> bool:
        """Delete one record.

        Returns:
            True if a record was deleted, False if it did not exist
        """
        model = self._model(table)
        try:
            async with self.db_manager.get_async_session() as session:
                row = await session.get(model, record_id)
                if row is None:
                    return False
                await session.delete(row)
                await session.commit()
                return True
        except SQLAlchemyError as e:
            logger.error("Failed to delete %s/%s: %s", table, record_id, e)
            raise

    async def delete_where(self, table: str, **filters: Any) -> int:
        """Delete every record matching the equality filters.

        Returns:
            Number of records deleted
        """
        model = self._model(table)
        stmt = sa_delete(model)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model, column) == value)
        try:
            async with self.db_manager.get_async_session() as session:
                result = await session.execute(stmt)
                await session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error("Failed to delete from %s with %s: %s", table, filters, e)
            raise
