"""Sync job repository.

State changes that race with other pollers go through conditional UPDATEs
(``claim`` and ``transition``) so only one writer wins each transition.
"""

from datetime import datetime

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.job import SyncJobRow
from complio.models.enums import ACTIVE_JOB_STATUSES, CLAIMABLE_JOB_STATUSES, JobStatus
from complio.repositories.base import BaseRepository


class SyncJobRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, SyncJobRow)

    async def get(self, job_id: str) -> SyncJobRow | None:
        return await self.get_by_id("job_id", job_id)

    async def list_by_connection(self, connection_id: str, limit: int = 50) -> list[SyncJobRow]:
        stmt = (
            select(SyncJobRow)
            .where(SyncJobRow.connection_id == connection_id)
            .order_by(SyncJobRow.scheduled_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_active(self, connection_id: str, job_type: str) -> SyncJobRow | None:
        """Return a not-yet-finished job of the same type for the connection, if any."""
        stmt = (
            select(SyncJobRow)
            .where(
                and_(
                    SyncJobRow.connection_id == connection_id,
                    SyncJobRow.job_type == job_type,
                    SyncJobRow.status.in_(ACTIVE_JOB_STATUSES),
                )
            )
            .order_by(SyncJobRow.scheduled_at.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_due(self, now: datetime, limit: int) -> list[SyncJobRow]:
        """Claimable jobs whose scheduled time has passed, highest priority first."""
        stmt = (
            select(SyncJobRow)
            .where(
                and_(
                    SyncJobRow.status.in_(CLAIMABLE_JOB_STATUSES),
                    SyncJobRow.scheduled_at <= now,
                )
            )
            .order_by(SyncJobRow.priority.asc(), SyncJobRow.scheduled_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_stale_running(self, started_before: datetime) -> list[SyncJobRow]:
        stmt = select(SyncJobRow).where(
            and_(
                SyncJobRow.status == JobStatus.RUNNING,
                SyncJobRow.started_at <= started_before,
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def claim(self, job_id: str, now: datetime) -> bool:
        """Atomically move a claimable job to RUNNING. True if this caller won."""
        stmt = (
            update(SyncJobRow)
            .where(
                and_(
                    SyncJobRow.job_id == job_id,
                    SyncJobRow.status.in_(CLAIMABLE_JOB_STATUSES),
                )
            )
            .values(status=JobStatus.RUNNING, started_at=now, completed_at=None, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def transition(self, job_id: str, from_statuses: tuple[str, ...], **values) -> bool:
        """Apply ``values`` only if the job is still in one of ``from_statuses``."""
        stmt = (
            update(SyncJobRow)
            .where(
                and_(
                    SyncJobRow.job_id == job_id,
                    SyncJobRow.status.in_(from_statuses),
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def status_counts(self, org_id: str) -> dict[str, int]:
        stmt = (
            select(SyncJobRow.status, func.count(SyncJobRow.job_id))
            .where(SyncJobRow.org_id == org_id)
            .group_by(SyncJobRow.status)
        )
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def completed_timings(self, org_id: str) -> list[tuple[datetime, datetime]]:
        stmt = select(SyncJobRow.started_at, SyncJobRow.completed_at).where(
            and_(
                SyncJobRow.org_id == org_id,
                SyncJobRow.status == JobStatus.COMPLETED,
                SyncJobRow.started_at.is_not(None),
                SyncJobRow.completed_at.is_not(None),
            )
        )
        result = await self.session.execute(stmt)
        return [(started, completed) for started, completed in result.all()]
