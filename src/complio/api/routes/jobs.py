"""Sync job status, cancellation and statistics."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from complio.dependencies import RequireOperator, get_db, get_orchestrator
from complio.errors.exceptions import NotFoundError
from complio.models.job import SyncJobModel
from complio.repositories.job_repo import SyncJobRepository
from complio.workers.queue import cancel_job

router = APIRouter(tags=["Jobs"])


@router.get("/jobs/{job_id}")
async def get_job_status(
    job_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict:
    row = await SyncJobRepository(db).get(job_id)
    if not row:
        raise NotFoundError("SyncJob", job_id)
    return SyncJobModel.from_row(row).model_dump(mode="json", exclude_none=True)


@router.post("/jobs/{job_id}/cancel", dependencies=[RequireOperator])
async def cancel_sync_job(
    job_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict:
    row = await cancel_job(db, job_id)
    await db.commit()
    return SyncJobModel.from_row(row).model_dump(mode="json", exclude_none=True)


@router.get("/organizations/{org_id}/jobs/stats")
async def get_job_stats(
    org_id: str,
    db: AsyncSession = Depends(get_db),
    orchestrator=Depends(get_orchestrator),
) -> dict:
    stats = await orchestrator.get_job_stats(db, org_id)
    return stats.model_dump()
