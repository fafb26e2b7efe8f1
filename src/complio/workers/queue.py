"""Sync job creation and cancellation."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.job import SyncJobRow
from complio.errors.exceptions import ConflictError, NotFoundError, ValidationError
from complio.models.enums import JobStatus, JobType
from complio.repositories.connection_repo import IntegrationConnectionRepository
from complio.repositories.job_repo import SyncJobRepository
from complio.services.id_generator import generate_id
from complio.services.timeutil import utcnow

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 5


async def create_sync_job(
    session: AsyncSession,
    connection_id: str,
    job_type: str = JobType.FULL_SYNC,
    priority: int = DEFAULT_PRIORITY,
    job_data: dict | None = None,
    scheduled_at: datetime | None = None,
    trace_id: str | None = None,
) -> tuple[SyncJobRow, bool]:
    """Create a pending job, or return the active one for the same connection and type.

    Returns:
        (job, created) where ``created`` is False when an existing job was reused.
    """
    if job_type not in set(JobType):
        raise ValidationError(f"Unsupported job type '{job_type}'")
    if not 1 <= priority <= 10:
        raise ValidationError("priority must be between 1 and 10")

    connection = await IntegrationConnectionRepository(session).get(connection_id)
    if not connection:
        raise NotFoundError("IntegrationConnection", connection_id)
    if connection.status == "disabled":
        raise ConflictError(f"Connection '{connection_id}' is disabled")

    repo = SyncJobRepository(session)
    existing = await repo.find_active(connection_id, job_type)
    if existing:
        logger.info("Reusing active job %s for connection %s", existing.job_id, connection_id)
        return existing, False

    job = await repo.create(
        job_id=generate_id("sjob_"),
        connection_id=connection_id,
        org_id=connection.org_id,
        job_type=job_type,
        status=JobStatus.PENDING,
        priority=priority,
        scheduled_at=scheduled_at or utcnow(),
        retry_count=0,
        job_data=job_data,
        trace_id=trace_id,
    )
    logger.info("Created %s job %s for connection %s (priority=%d)", job_type, job.job_id, connection_id, priority)
    return job, True


async def cancel_job(session: AsyncSession, job_id: str) -> SyncJobRow:
    """Cancel a job that has not started its current attempt."""
    repo = SyncJobRepository(session)
    job = await repo.get(job_id)
    if not job:
        raise NotFoundError("SyncJob", job_id)

    now = utcnow()
    won = await repo.transition(
        job_id,
        (JobStatus.PENDING, JobStatus.RETRYING),
        status=JobStatus.CANCELLED,
        completed_at=now,
        updated_at=now,
    )
    if not won:
        raise ConflictError(
            f"Job '{job_id}' cannot be cancelled in status '{job.status}'",
            details={"status": job.status},
        )
    await session.refresh(job)
    logger.info("Cancelled job %s", job_id)
    return job
