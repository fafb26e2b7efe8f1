"""Pydantic model for SyncJob status responses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from complio.models.enums import JobStatus, JobType


class SyncJobModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    job_id: str = Field(..., pattern=r"^sjob_[A-Za-z0-9_-]+$")
    connection_id: str
    org_id: str
    job_type: JobType
    status: JobStatus
    priority: int = Field(..., ge=1, le=10)
    scheduled_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    retry_count: int = 0
    job_data: dict | None = None
    result_data: dict | None = None
    error_message: str | None = None
    trace_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row) -> "SyncJobModel":
        return cls(
            job_id=row.job_id,
            connection_id=row.connection_id,
            org_id=row.org_id,
            job_type=row.job_type,
            status=row.status,
            priority=row.priority,
            scheduled_at=row.scheduled_at,
            started_at=row.started_at,
            completed_at=row.completed_at,
            retry_count=row.retry_count,
            job_data=row.job_data,
            result_data=row.result_data,
            error_message=row.error_message,
            trace_id=row.trace_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class JobStats(BaseModel):
    total_jobs: int = 0
    pending_jobs: int = 0
    running_jobs: int = 0
    retrying_jobs: int = 0
    completed_jobs: int = 0
    failed_jobs: int = 0
    cancelled_jobs: int = 0
    average_execution_seconds: float = 0.0
