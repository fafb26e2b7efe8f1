"""Integration log repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.integration_log import IntegrationLogRow
from complio.repositories.base import BaseRepository


class IntegrationLogRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, IntegrationLogRow)

    async def list_by_connection(self, connection_id: str, limit: int = 50) -> list[IntegrationLogRow]:
        """List recent logs for a connection, newest first."""
        stmt = (
            select(IntegrationLogRow)
            .where(IntegrationLogRow.connection_id == connection_id)
            .order_by(IntegrationLogRow.started_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
