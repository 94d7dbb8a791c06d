"""Table repository for data-table records."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.models import TableProjectModel


class TableRepository:
    """
    Record-array storage behind the data-table node.

    Every write replaces the whole array. Concurrent writers to one table
    are last-writer-wins.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_table(self, table_id: str) -> TableProjectModel | None:
        async with self._session_factory() as session:
            return await session.get(TableProjectModel, table_id)

    async def save_records(self, table_id: str, records: list[dict[str, Any]]) -> None:
        """Persist the full record array of a table."""
        async with self._session_factory() as session:
            table = await session.get(TableProjectModel, table_id)
            if table is None:
                return
            # New list so the JSON column is seen as changed
            table.records = list(records)
            session.add(table)
            await session.commit()
