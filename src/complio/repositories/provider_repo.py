"""Integration provider repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.provider import IntegrationProviderRow
from complio.repositories.base import BaseRepository


class IntegrationProviderRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, IntegrationProviderRow)

    async def get(self, provider_id: str) -> IntegrationProviderRow | None:
        return await self.get_by_id("provider_id", provider_id)

    async def get_by_category(self, category: str) -> IntegrationProviderRow | None:
        return await self.get_by_id("category", category)

    async def list_active(self) -> list[IntegrationProviderRow]:
        stmt = (
            select(IntegrationProviderRow)
            .where(IntegrationProviderRow.is_active.is_(True))
            .order_by(IntegrationProviderRow.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
