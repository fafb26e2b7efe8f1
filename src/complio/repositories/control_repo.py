"""Control repository."""

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.control import ControlRow
from complio.repositories.base import BaseRepository


class ControlRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ControlRow)

    async def get(self, control_id: str) -> ControlRow | None:
        return await self.get_by_id("control_id", control_id)

    async def list_by_org(self, org_id: str) -> list[ControlRow]:
        stmt = select(ControlRow).where(ControlRow.org_id == org_id).order_by(ControlRow.code)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_code(self, org_id: str, code: str) -> ControlRow | None:
        stmt = select(ControlRow).where(and_(ControlRow.org_id == org_id, ControlRow.code == code))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_codes(self, org_id: str, codes: list[str]) -> list[ControlRow]:
        if not codes:
            return []
        stmt = select(ControlRow).where(
            and_(ControlRow.org_id == org_id, ControlRow.code.in_(codes))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
