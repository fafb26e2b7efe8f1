"""Sync orchestration: polling loops, claiming, retries and scheduled syncs."""

import asyncio
import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from complio.config import Settings, settings as default_settings
from complio.db.models.connection import IntegrationConnectionRow
from complio.errors.exceptions import ComplioError, NotFoundError, ValidationError
from complio.integrations.service import build_adapter
from complio.logging_config import clear_request_context
from complio.models.enums import JobStatus, JobType, SyncType
from complio.models.job import JobStats, SyncJobModel
from complio.repositories.connection_repo import IntegrationConnectionRepository
from complio.repositories.job_repo import SyncJobRepository
from complio.services.schedule import compute_next_sync, schedule_interval
from complio.services.timeutil import as_utc, utcnow
from complio.workers.base import BaseWorker
from complio.workers.queue import create_sync_job
from complio.workers.registry import get_worker

logger = logging.getLogger(__name__)

SCHEDULED_PRIORITY = 5
MANUAL_PRIORITY = 1
LOCK_KEY_PREFIX = "complio:scheduler:lock"


class SyncOrchestrator:
    """Drives sync jobs from PENDING through to a terminal state.

    Multiple orchestrators may poll the same database; a job attempt only
    runs in the one that wins the conditional claim.
    """

    def __init__(
        self,
        session_factory,
        settings: Settings | None = None,
        redis=None,
        adapter_factory=build_adapter,
    ):
        self.session_factory = session_factory
        self.settings = settings or default_settings
        self.redis = redis
        self.adapter_factory = adapter_factory
        self._semaphore = asyncio.Semaphore(self.settings.max_concurrent_jobs)
        self._tasks: list[asyncio.Task] = []
        self._background: set[asyncio.Task] = set()

    def _worker(self, job_type: str) -> BaseWorker:
        worker = get_worker(job_type, settings=self.settings, adapter_factory=self.adapter_factory)
        if worker is None:
            raise ComplioError("UNKNOWN_JOB_TYPE", f"No worker registered for job type '{job_type}'")
        return worker

    # ------------------------------------------------------------------
    # Job execution
    # ------------------------------------------------------------------

    async def process_pending_jobs(self) -> int:
        """Claim due jobs and run them concurrently. Returns the number executed."""
        now = utcnow()
        claimed: list[str] = []
        async with self.session_factory() as session:
            repo = SyncJobRepository(session)
            for job in await repo.list_due(now, self.settings.max_concurrent_jobs):
                if await repo.claim(job.job_id, now):
                    claimed.append(job.job_id)
                else:
                    logger.debug("Job %s claimed by another poller", job.job_id)
            await session.commit()

        if not claimed:
            return 0

        logger.info("Processing %d sync jobs", len(claimed))
        outcomes = await asyncio.gather(
            *(self.execute_job(job_id) for job_id in claimed), return_exceptions=True
        )
        executed = 0
        for job_id, outcome in zip(claimed, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.error("Sync job %s crashed: %r", job_id, outcome, exc_info=outcome)
            else:
                executed += 1
        return executed

    async def execute_job(self, job_id: str) -> str | None:
        """Run one attempt of an already-claimed job in its own session."""
        async with self._semaphore:
            async with self.session_factory() as session:
                job = await SyncJobRepository(session).get(job_id)
                if not job:
                    raise NotFoundError("SyncJob", job_id)
                try:
                    return await self._worker(job.job_type).execute(job_id, session)
                finally:
                    clear_request_context()

    async def handle_failure(self, job_id: str, error_message: str) -> str | None:
        """Record a failed attempt for a RUNNING job (retry or fail)."""
        async with self.session_factory() as session:
            job = await SyncJobRepository(session).get(job_id)
            if not job:
                raise NotFoundError("SyncJob", job_id)
            return await self._worker(job.job_type).handle_failure(session, job, error_message)

    async def recover_stale_jobs(self) -> int:
        """Fail or retry jobs stuck in RUNNING past the job timeout."""
        cutoff = utcnow() - timedelta(minutes=self.settings.job_timeout_minutes)
        async with self.session_factory() as session:
            stale = await SyncJobRepository(session).list_stale_running(cutoff)
            stale_ids = [job.job_id for job in stale]

        recovered = 0
        for job_id in stale_ids:
            message = f"Job timed out after {self.settings.job_timeout_minutes} minutes without completing"
            if await self.handle_failure(job_id, message):
                recovered += 1
        if recovered:
            logger.warning("Recovered %d stale running jobs", recovered)
        return recovered

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def _acquire_schedule_lock(self, connection: IntegrationConnectionRow) -> bool:
        if not self.redis:
            return True
        interval = schedule_interval(connection.sync_schedule, connection.sync_frequency_minutes)
        ttl = max(60, int(interval.total_seconds()))
        lock_key = f"{LOCK_KEY_PREFIX}:{connection.connection_id}"
        return bool(await self.redis.set(lock_key, "1", nx=True, ex=ttl))

    async def process_scheduled_syncs(self) -> int:
        """Create full_sync jobs for connections whose next run has arrived."""
        now = utcnow()
        created_count = 0

        async with self.session_factory() as session:
            repo = IntegrationConnectionRepository(session)
            for connection in await repo.list_due_for_sync(now):
                try:
                    if not await self._acquire_schedule_lock(connection):
                        logger.debug("Connection %s already locked by another instance", connection.connection_id)
                        continue

                    job, created = await create_sync_job(
                        session,
                        connection.connection_id,
                        job_type=JobType.FULL_SYNC,
                        priority=SCHEDULED_PRIORITY,
                        job_data={"sync_type": SyncType.SCHEDULED},
                        trace_id=f"scheduler_{connection.connection_id}",
                    )
                    await repo.update(
                        connection,
                        last_sync_at=now,
                        next_sync_at=compute_next_sync(
                            connection.sync_schedule, connection.sync_frequency_minutes, now
                        ),
                    )
                    if created:
                        created_count += 1
                        logger.info(
                            "Scheduled sync for connection %s (job=%s)",
                            connection.connection_id, job.job_id,
                        )
                except ComplioError as exc:
                    logger.warning("Failed to schedule sync for %s: %s", connection.connection_id, exc.message)

            await session.commit()

        return created_count

    async def create_manual_sync(
        self,
        session: AsyncSession,
        connection_id: str,
        job_type: str = JobType.FULL_SYNC,
        priority: int = MANUAL_PRIORITY,
        requested_by: str | None = None,
        trace_id: str | None = None,
        run_now: bool = False,
    ) -> tuple[SyncJobModel, bool]:
        """Queue a manual sync; with ``run_now`` it is claimed and run in the background."""
        job, created = await create_sync_job(
            session,
            connection_id,
            job_type=job_type,
            priority=priority,
            job_data={"sync_type": SyncType.MANUAL, "requested_by": requested_by},
            trace_id=trace_id,
        )
        await session.commit()
        model = SyncJobModel.from_row(job)

        if run_now and created:
            task = asyncio.create_task(self.run_job_now(job.job_id))
            self._background.add(task)
            task.add_done_callback(self._background.discard)
        return model, created

    async def run_job_now(self, job_id: str) -> str | None:
        """Claim a single job and execute it, bypassing the poll interval."""
        async with self.session_factory() as session:
            won = await SyncJobRepository(session).claim(job_id, utcnow())
            await session.commit()
        if not won:
            logger.info("Job %s was claimed elsewhere before immediate run", job_id)
            return None
        try:
            return await self.execute_job(job_id)
        except Exception:
            logger.exception("Immediate run of job %s crashed", job_id)
            raise

    # ------------------------------------------------------------------
    # Queries and schedule management
    # ------------------------------------------------------------------

    async def get_job_stats(self, session: AsyncSession, org_id: str) -> JobStats:
        repo = SyncJobRepository(session)
        counts = await repo.status_counts(org_id)
        durations = [
            (as_utc(completed) - as_utc(started)).total_seconds()
            for started, completed in await repo.completed_timings(org_id)
        ]
        return JobStats(
            total_jobs=sum(counts.values()),
            pending_jobs=counts.get(JobStatus.PENDING, 0),
            running_jobs=counts.get(JobStatus.RUNNING, 0),
            retrying_jobs=counts.get(JobStatus.RETRYING, 0),
            completed_jobs=counts.get(JobStatus.COMPLETED, 0),
            failed_jobs=counts.get(JobStatus.FAILED, 0),
            cancelled_jobs=counts.get(JobStatus.CANCELLED, 0),
            average_execution_seconds=round(sum(durations) / len(durations), 2) if durations else 0.0,
        )

    async def get_sync_schedules(self, session: AsyncSession, org_id: str) -> list[dict]:
        connections = await IntegrationConnectionRepository(session).list_by_org(org_id)
        return [
            {
                "connection_id": c.connection_id,
                "connection_name": c.connection_name,
                "sync_schedule": c.sync_schedule,
                "sync_frequency_minutes": c.sync_frequency_minutes,
                "job_type": JobType.FULL_SYNC,
                "is_active": c.next_sync_at is not None,
                "last_run": c.last_sync_at,
                "next_run": c.next_sync_at,
            }
            for c in connections
            if c.sync_schedule or c.sync_frequency_minutes
        ]

    async def update_sync_schedule(
        self,
        session: AsyncSession,
        connection_id: str,
        sync_schedule: str | None,
        is_active: bool,
        sync_frequency_minutes: int | None = None,
    ) -> IntegrationConnectionRow:
        repo = IntegrationConnectionRepository(session)
        connection = await repo.get(connection_id)
        if not connection:
            raise NotFoundError("IntegrationConnection", connection_id)

        if is_active:
            if sync_schedule is None and sync_frequency_minutes is None:
                raise ValidationError("An active schedule needs sync_schedule or sync_frequency_minutes")
            next_sync_at = compute_next_sync(sync_schedule, sync_frequency_minutes, utcnow())
            await repo.update(
                connection,
                sync_schedule=sync_schedule,
                sync_frequency_minutes=sync_frequency_minutes,
                next_sync_at=next_sync_at,
            )
        else:
            await repo.update(
                connection,
                sync_schedule=None,
                sync_frequency_minutes=None,
                next_sync_at=None,
            )
        logger.info("Updated sync schedule for %s (active=%s)", connection_id, is_active)
        return connection

    # ------------------------------------------------------------------
    # Background loops
    # ------------------------------------------------------------------

    async def _job_loop(self) -> None:
        logger.info("Sync job loop started (poll_interval=%ds)", self.settings.job_poll_interval_seconds)
        while True:
            try:
                await self.recover_stale_jobs()
                await self.process_pending_jobs()
                await asyncio.sleep(self.settings.job_poll_interval_seconds)
            except asyncio.CancelledError:
                logger.info("Sync job loop stopped")
                break
            except Exception as exc:
                logger.exception("Sync job loop error: %s", exc)
                await asyncio.sleep(self.settings.job_poll_interval_seconds)

    async def _schedule_loop(self) -> None:
        logger.info("Sync schedule loop started (poll_interval=%ds)", self.settings.schedule_poll_interval_seconds)
        while True:
            try:
                count = await self.process_scheduled_syncs()
                if count:
                    logger.info("Scheduler created %d sync jobs", count)
                await asyncio.sleep(self.settings.schedule_poll_interval_seconds)
            except asyncio.CancelledError:
                logger.info("Sync schedule loop stopped")
                break
            except Exception as exc:
                logger.exception("Sync schedule loop error: %s", exc)
                await asyncio.sleep(self.settings.schedule_poll_interval_seconds)

    async def run(self) -> None:
        """Run both loops until cancelled."""
        await asyncio.gather(self._job_loop(), self._schedule_loop())

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._job_loop()),
            asyncio.create_task(self._schedule_loop()),
        ]
        logger.info("Sync orchestrator started")

    async def stop(self) -> None:
        tasks = self._tasks + list(self._background)
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        self._background.clear()
        logger.info("Sync orchestrator stopped")
