"""Integration connection repository."""

from datetime import datetime

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.connection import IntegrationConnectionRow
from complio.db.models.evidence import AutomatedEvidenceRow
from complio.db.models.integration_log import IntegrationLogRow
from complio.db.models.job import SyncJobRow
from complio.models.enums import ConnectionStatus
from complio.repositories.base import BaseRepository


class IntegrationConnectionRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, IntegrationConnectionRow)

    async def get(self, connection_id: str) -> IntegrationConnectionRow | None:
        return await self.get_by_id("connection_id", connection_id)

    async def list_by_org(self, org_id: str) -> list[IntegrationConnectionRow]:
        stmt = (
            select(IntegrationConnectionRow)
            .where(IntegrationConnectionRow.org_id == org_id)
            .order_by(IntegrationConnectionRow.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_name(self, org_id: str, name: str) -> IntegrationConnectionRow | None:
        """Find a connection by org + name (for uniqueness checks)."""
        stmt = select(IntegrationConnectionRow).where(
            and_(
                IntegrationConnectionRow.org_id == org_id,
                IntegrationConnectionRow.connection_name == name,
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_due_for_sync(self, now: datetime) -> list[IntegrationConnectionRow]:
        """Active connections with a schedule whose next run has arrived.

        ``next_sync_at`` is only set while a schedule (label or minutes) is active.
        """
        stmt = select(IntegrationConnectionRow).where(
            and_(
                IntegrationConnectionRow.status == ConnectionStatus.ACTIVE,
                IntegrationConnectionRow.next_sync_at.is_not(None),
                IntegrationConnectionRow.next_sync_at <= now,
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def related_counts(self, connection_id: str) -> dict[str, int]:
        """Count jobs, logs and automated evidence rows for a connection."""
        counts = {}
        for key, model in (
            ("jobs", SyncJobRow),
            ("logs", IntegrationLogRow),
            ("automated_evidence", AutomatedEvidenceRow),
        ):
            stmt = select(func.count()).select_from(model).where(model.connection_id == connection_id)
            result = await self.session.execute(stmt)
            counts[key] = result.scalar() or 0
        return counts

    async def delete_cascade(self, row: IntegrationConnectionRow) -> None:
        """Delete a connection with its jobs, logs and automated evidence."""
        for model in (AutomatedEvidenceRow, IntegrationLogRow, SyncJobRow):
            await self.session.execute(
                delete(model).where(model.connection_id == row.connection_id)
            )
        await self.delete(row)
