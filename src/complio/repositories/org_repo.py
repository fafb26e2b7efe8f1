"""Organization repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.org import OrganizationRow
from complio.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, OrganizationRow)

    async def get(self, org_id: str) -> OrganizationRow | None:
        return await self.get_by_id("org_id", org_id)

    async def get_by_slug(self, slug: str) -> OrganizationRow | None:
        return await self.get_by_id("slug", slug)

    async def list_all(self) -> list[OrganizationRow]:
        stmt = select(OrganizationRow).order_by(OrganizationRow.name)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
