"""
Generic async repository over one SQLAlchemy model.

Repositories only read and stage rows; they never begin or commit. The
owning service opens ``DatabaseService.get_transaction()`` and hands the
session in, so a ledger debit and its journal entry land together.

    class MountRegistry(BaseRepository[Mount]):
        async def for_character(self, session, character_id):
            return await self.first(session, Mount.character_id == character_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import exists as sql_exists
from sqlalchemy import select

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """Row access for ``model``. Pass ``lock=True`` to read with SELECT FOR UPDATE."""

    def __init__(self, model: Type[ModelT], logger: Logger) -> None:
        self.model = model
        self.log = logger

    def _trace(self, op: str, **fields: Any) -> None:
        self.log.debug(
            f"{self.model.__name__}.{op}",
            extra={"model": self.model.__name__, "op": op, **fields},
        )

    async def get(
        self, session: AsyncSession, key: Any, *, lock: bool = False
    ) -> Optional[ModelT]:
        row = await session.get(self.model, key, with_for_update=lock)
        self._trace("get", key=key, found=row is not None, locked=lock)
        return row

    async def first(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        lock: bool = False,
    ) -> Optional[ModelT]:
        stmt = select(self.model).where(*conditions).limit(1)
        if lock:
            stmt = stmt.with_for_update()
        row = (await session.execute(stmt)).scalars().first()
        self._trace("first", found=row is not None, locked=lock)
        return row

    async def all(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        lock: bool = False,
    ) -> List[ModelT]:
        stmt = select(self.model).where(*conditions)
        if lock:
            stmt = stmt.with_for_update()
        rows = list((await session.execute(stmt)).scalars().all())
        self._trace("all", found_count=len(rows), locked=lock)
        return rows

    async def exists(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> bool:
        stmt = select(sql_exists().where(*conditions))
        return bool((await session.execute(stmt)).scalar())

    def add(self, session: AsyncSession, row: ModelT) -> ModelT:
        session.add(row)
        self._trace("add")
        return row

    async def delete(self, session: AsyncSession, row: ModelT) -> None:
        await session.delete(row)
        self._trace("delete")

    async def flush(self, session: AsyncSession) -> None:
        await session.flush()
