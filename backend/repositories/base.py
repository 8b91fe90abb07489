from __future__ import annotations

from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from models.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Data access for one mapped table.

    Repositories flush but never commit; the transaction belongs to the
    request-scoped session handed out by ``DatabaseManager.session()``.
    """

    model: Type[ModelT]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, row: ModelT) -> ModelT:
        """Stage ``row`` and flush so its primary key and server defaults are loaded."""
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_by_id(self, row_id: int) -> Optional[ModelT]:
        return await self.session.get(self.model, row_id)
