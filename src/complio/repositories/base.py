"""Base repository with the CRUD operations shared by every table."""

from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository:
    """Async repository bound to one session and one mapped class."""

    def __init__(self, session: AsyncSession, model_class: type[T]):
        self.session = session
        self.model_class = model_class

    def _column(self, name: str):
        return getattr(self.model_class, name)

    async def get_by_id(self, pk_field: str, pk_value: str) -> T | None:
        stmt = select(self.model_class).where(self._column(pk_field) == pk_value)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> T:
        """Add a row and flush so server defaults and the primary key are populated."""
        row = self.model_class(**kwargs)
        self.session.add(row)
        await self.session.flush()
        return row

    async def update(self, row: T, **kwargs: Any) -> T:
        for key, value in kwargs.items():
            setattr(row, key, value)
        await self.session.flush()
        return row

    async def delete(self, row: T) -> None:
        await self.session.delete(row)
        await self.session.flush()

    async def list_by_field(self, field: str, value: Any, order_by: str | None = None) -> list[T]:
        """List rows where ``field == value``, optionally sorted ascending by ``order_by``."""
        stmt = select(self.model_class).where(self._column(field) == value)
        if order_by:
            stmt = stmt.order_by(self._column(order_by))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
