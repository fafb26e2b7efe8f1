"""Worker for full_sync and incremental_sync jobs."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.job import SyncJobRow
from complio.errors.exceptions import NotFoundError
from complio.integrations.adapters.base import SyncResult
from complio.integrations.service import IntegrationService, build_adapter
from complio.models.enums import SyncType
from complio.repositories.connection_repo import IntegrationConnectionRepository
from complio.repositories.integration_log_repo import IntegrationLogRepository
from complio.repositories.provider_repo import IntegrationProviderRepository
from complio.services.evidence.engine import generate_evidence
from complio.services.id_generator import generate_id
from complio.services.timeutil import utcnow
from complio.workers.base import BaseWorker

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


class SyncWorker(BaseWorker):
    """Pull data from a connection's provider through its adapter."""

    def __init__(self, settings=None, adapter_factory=build_adapter):
        super().__init__(settings)
        self.adapter_factory = adapter_factory

    async def process(self, job: SyncJobRow, session: AsyncSession) -> SyncResult:
        connection = await IntegrationConnectionRepository(session).get(job.connection_id)
        if not connection:
            raise NotFoundError("IntegrationConnection", job.connection_id)

        adapter = await IntegrationService(session, self.adapter_factory).adapter_for(connection)
        return await adapter.sync(job.job_type)

    async def _write_log(
        self,
        session: AsyncSession,
        job: SyncJobRow,
        status: str,
        result: SyncResult | None,
        error_message: str | None = None,
    ) -> None:
        connection = await IntegrationConnectionRepository(session).get(job.connection_id)
        provider = await IntegrationProviderRepository(session).get(connection.provider_id) if connection else None
        now = utcnow()
        error_details = None
        if error_message or (result and result.error_details):
            error_details = {
                "message": error_message,
                "errors": result.error_details if result else [],
            }

        await IntegrationLogRepository(session).create(
            log_id=generate_id("slog_"),
            org_id=job.org_id,
            connection_id=job.connection_id,
            job_id=job.job_id,
            provider=provider.name if provider else "unknown",
            sync_type=(job.job_data or {}).get("sync_type", SyncType.MANUAL),
            action=job.job_type,
            status=status,
            records_processed=result.records_processed if result else 0,
            errors_count=result.errors_count if result else 1,
            duration_seconds=result.duration_seconds if result else 0.0,
            started_at=job.started_at or now,
            completed_at=now,
            error_details=error_details,
            log_metadata=result.metadata if result else None,
        )

    async def on_completed(self, job: SyncJobRow, result: SyncResult, session: AsyncSession) -> None:
        connection_repo = IntegrationConnectionRepository(session)
        connection = await connection_repo.get(job.connection_id)
        if connection:
            await connection_repo.update(connection, last_sync_at=utcnow())
        await self._write_log(session, job, "success", result)
        await session.commit()

        if not self.settings.auto_evidence_generation or connection is None:
            return

        # Evidence generation never changes the job's outcome
        try:
            created = await generate_evidence(session, connection, result, SYSTEM_ACTOR, job_id=job.job_id)
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Evidence generation failed for job %s", job.job_id)
            return
        if created:
            logger.info("Job %s generated %d automated evidence items", job.job_id, len(created))

    async def on_failed(self, job, error_message, result, session) -> None:
        connection_repo = IntegrationConnectionRepository(session)
        connection = await connection_repo.get(job.connection_id)
        if connection:
            await connection_repo.update(
                connection,
                last_error_at=utcnow(),
                last_error_message=error_message,
            )
        await self._write_log(session, job, "failed", result, error_message)
