"""Base worker interface for sync job attempts."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from complio.config import Settings, settings as default_settings
from complio.db.models.job import SyncJobRow
from complio.integrations.adapters.base import SyncResult
from complio.logging_config import bind_job_context
from complio.models.enums import JobStatus
from complio.repositories.job_repo import SyncJobRepository
from complio.services.timeutil import utcnow

logger = logging.getLogger(__name__)


def _failure_message(result: SyncResult) -> str:
    errors = [d.get("error", "") for d in result.error_details if d.get("error")]
    if errors:
        return "; ".join(errors)
    return "Sync reported failure"


class BaseWorker(ABC):
    """Runs one attempt of a claimed job: running -> completed | retrying | failed.

    The caller claims the job (moves it to RUNNING) first. Every transition
    out of RUNNING is conditional, so a job cancelled or recovered elsewhere
    in the meantime is left alone.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    @abstractmethod
    async def process(self, job: SyncJobRow, session: AsyncSession) -> SyncResult:
        """Perform the job's work and return the sync result."""
        ...

    async def on_completed(self, job: SyncJobRow, result: SyncResult, session: AsyncSession) -> None:
        """Hook run after a job reaches COMPLETED (already committed)."""

    async def on_failed(
        self,
        job: SyncJobRow,
        error_message: str,
        result: SyncResult | None,
        session: AsyncSession,
    ) -> None:
        """Hook run after a failed attempt, inside the same transaction."""

    @property
    def timeout_seconds(self) -> float:
        return self.settings.job_timeout_minutes * 60

    async def execute(self, job_id: str, session: AsyncSession) -> str | None:
        """Execute one attempt. Returns the status written, or None if another writer won."""
        repo = SyncJobRepository(session)
        job = await repo.get(job_id)
        if not job:
            logger.warning("Job %s disappeared before execution", job_id)
            return None
        if job.status != JobStatus.RUNNING:
            logger.warning("Job %s is %s, not running; skipping", job_id, job.status)
            return None

        bind_job_context(job.job_id, job.connection_id, job.org_id)
        logger.info("Job %s started (type=%s, attempt=%d)", job_id, job.job_type, job.retry_count + 1)

        try:
            result = await asyncio.wait_for(self.process(job, session), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            message = f"Job timed out after {self.settings.job_timeout_minutes} minutes"
            logger.error("Job %s: %s", job_id, message)
            return await self._fail_after_error(session, job_id, message)
        except Exception as exc:
            logger.exception("Job %s failed (type=%s, retry=%d)", job_id, job.job_type, job.retry_count)
            return await self._fail_after_error(session, job_id, str(exc) or type(exc).__name__)

        if not result.success:
            return await self.handle_failure(session, job, _failure_message(result), result)

        now = utcnow()
        won = await repo.transition(
            job_id,
            (JobStatus.RUNNING,),
            status=JobStatus.COMPLETED,
            completed_at=now,
            result_data=result.summary(),
            error_message=None,
            updated_at=now,
        )
        if not won:
            logger.warning("Job %s left running state during execution; result discarded", job_id)
            await session.rollback()
            return None

        await session.commit()
        await session.refresh(job)
        logger.info("Job %s completed (%d records)", job_id, result.records_processed)
        await self.on_completed(job, result, session)
        return JobStatus.COMPLETED

    async def _fail_after_error(self, session: AsyncSession, job_id: str, message: str) -> str | None:
        # The aborted attempt may have left the transaction unusable
        await session.rollback()
        job = await SyncJobRepository(session).get(job_id)
        if not job:
            return None
        return await self.handle_failure(session, job, message)

    async def handle_failure(
        self,
        session: AsyncSession,
        job: SyncJobRow,
        error_message: str,
        result: SyncResult | None = None,
    ) -> str | None:
        """Schedule a retry with linear backoff, or fail once attempts are used up."""
        now = utcnow()
        retry_count = job.retry_count + 1
        values: dict = {
            "retry_count": retry_count,
            "error_message": error_message,
            "updated_at": now,
        }
        if result is not None:
            values["result_data"] = result.summary()

        if retry_count < self.settings.retry_attempts:
            values["status"] = JobStatus.RETRYING
            values["scheduled_at"] = now + timedelta(minutes=self.settings.retry_delay_minutes * retry_count)
        else:
            values["status"] = JobStatus.FAILED
            values["completed_at"] = now

        won = await SyncJobRepository(session).transition(job.job_id, (JobStatus.RUNNING,), **values)
        if not won:
            logger.warning("Job %s left running state before failure could be recorded", job.job_id)
            await session.rollback()
            return None

        await self.on_failed(job, error_message, result, session)
        await session.commit()
        await session.refresh(job)

        if values["status"] == JobStatus.RETRYING:
            logger.warning(
                "Job %s will retry (attempt %d of %d) at %s",
                job.job_id, retry_count + 1, self.settings.retry_attempts, values["scheduled_at"].isoformat(),
            )
        else:
            logger.error("Job %s failed permanently after %d attempts", job.job_id, retry_count)
        return values["status"]
