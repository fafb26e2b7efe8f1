"""Integration connection routes: CRUD, connection tests, manual syncs and schedules."""

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from complio.api.middleware.rate_limit import write_limit
from complio.dependencies import RequireOperator, get_current_user, get_db, get_orchestrator, get_trace_id
from complio.errors.exceptions import AuthorizationError, ConflictError, NotFoundError
from complio.integrations.service import IntegrationService
from complio.models.enums import ConnectionStatus, JobType
from complio.models.job import SyncJobModel
from complio.repositories.connection_repo import IntegrationConnectionRepository
from complio.repositories.integration_log_repo import IntegrationLogRepository
from complio.repositories.job_repo import SyncJobRepository
from complio.repositories.org_repo import OrganizationRepository
from complio.repositories.provider_repo import IntegrationProviderRepository
from complio.services.credentials import ConnectionCredentials, encrypt_credentials
from complio.services.id_generator import generate_id
from complio.services.schedule import compute_next_sync
from complio.services.timeutil import utcnow

router = APIRouter(tags=["Connections"])


# --- Request models ---


class ConnectionCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    provider_id: str
    connection_name: str = Field(..., min_length=1, max_length=200)
    credentials: ConnectionCredentials
    sync_schedule: str | None = None
    sync_frequency_minutes: int | None = Field(None, gt=0)


class ConnectionUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    connection_name: str | None = Field(None, min_length=1, max_length=200)
    credentials: ConnectionCredentials | None = None
    status: ConnectionStatus | None = None
    sync_schedule: str | None = None
    sync_frequency_minutes: int | None = Field(None, gt=0)


class SyncRequest(BaseModel):
    job_type: JobType = JobType.FULL_SYNC
    priority: int = Field(1, ge=1, le=10)
    run_now: bool = False


class ScheduleUpdate(BaseModel):
    sync_schedule: str | None = None
    sync_frequency_minutes: int | None = Field(None, gt=0)
    is_active: bool = True


# --- Helpers ---


def _iso(value):
    return value.isoformat() if value else None


def _connection_to_dict(row, counts: dict | None = None) -> dict:
    data = {
        "connection_id": row.connection_id,
        "org_id": row.org_id,
        "provider_id": row.provider_id,
        "connection_name": row.connection_name,
        "status": row.status,
        "has_credentials": bool(row.credentials_encrypted),
        "sync_schedule": row.sync_schedule,
        "sync_frequency_minutes": row.sync_frequency_minutes,
        "next_sync_at": _iso(row.next_sync_at),
        "last_sync_at": _iso(row.last_sync_at),
        "last_error_at": _iso(row.last_error_at),
        "last_error_message": row.last_error_message,
        "created_by": row.created_by,
        "created_at": _iso(row.created_at),
    }
    if counts is not None:
        data["counts"] = counts
    return data


def _log_to_dict(row) -> dict:
    return {
        "log_id": row.log_id,
        "connection_id": row.connection_id,
        "job_id": row.job_id,
        "provider": row.provider,
        "sync_type": row.sync_type,
        "action": row.action,
        "status": row.status,
        "records_processed": row.records_processed,
        "errors_count": row.errors_count,
        "duration_seconds": row.duration_seconds,
        "started_at": _iso(row.started_at),
        "completed_at": _iso(row.completed_at),
        "error_details": row.error_details,
        "metadata": row.log_metadata,
    }


def _check_org_access(user: dict, org_id: str) -> None:
    """Users bound to an org may only act inside it; admins are unrestricted."""
    user_org = user.get("org_id")
    if user_org and user_org != org_id and "admin" not in user.get("roles", []):
        raise AuthorizationError(f"Not a member of organization '{org_id}'")


async def _get_connection(connection_id: str, db: AsyncSession):
    row = await IntegrationConnectionRepository(db).get(connection_id)
    if not row:
        raise NotFoundError("IntegrationConnection", connection_id)
    return row


# --- Org-scoped routes ---


@router.post("/organizations/{org_id}/connections", status_code=201)
@write_limit
async def create_connection(
    request: Request,
    org_id: str,
    body: ConnectionCreate,
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
) -> dict:
    _check_org_access(user, org_id)
    if not await OrganizationRepository(db).get(org_id):
        raise NotFoundError("Organization", org_id)
    if not await IntegrationProviderRepository(db).get(body.provider_id):
        raise NotFoundError("IntegrationProvider", body.provider_id)

    repo = IntegrationConnectionRepository(db)
    if await repo.get_by_name(org_id, body.connection_name):
        raise ConflictError(f"Connection name '{body.connection_name}' already exists in this organization")

    row = await repo.create(
        connection_id=generate_id("conn_"),
        org_id=org_id,
        provider_id=body.provider_id,
        connection_name=body.connection_name,
        credentials_encrypted=encrypt_credentials(body.credentials),
        status=ConnectionStatus.PENDING_SETUP,
        sync_schedule=body.sync_schedule,
        sync_frequency_minutes=body.sync_frequency_minutes,
        next_sync_at=compute_next_sync(body.sync_schedule, body.sync_frequency_minutes, utcnow()),
        created_by=user["sub"],
    )
    await db.commit()
    return _connection_to_dict(row)


@router.get("/organizations/{org_id}/connections")
async def list_connections(
    org_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    repo = IntegrationConnectionRepository(db)
    rows = await repo.list_by_org(org_id)
    return [_connection_to_dict(r, await repo.related_counts(r.connection_id)) for r in rows]


@router.get("/organizations/{org_id}/sync-schedules")
async def list_sync_schedules(
    org_id: str,
    db: AsyncSession = Depends(get_db),
    orchestrator=Depends(get_orchestrator),
) -> list[dict]:
    schedules = await orchestrator.get_sync_schedules(db, org_id)
    for entry in schedules:
        entry["last_run"] = _iso(entry["last_run"])
        entry["next_run"] = _iso(entry["next_run"])
    return schedules


# --- Connection routes ---


@router.get("/connections/{connection_id}")
async def get_connection(
    connection_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict:
    row = await _get_connection(connection_id, db)
    counts = await IntegrationConnectionRepository(db).related_counts(connection_id)
    return _connection_to_dict(row, counts)


@router.put("/connections/{connection_id}")
@write_limit
async def update_connection(
    request: Request,
    connection_id: str,
    body: ConnectionUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    repo = IntegrationConnectionRepository(db)
    row = await _get_connection(connection_id, db)
    fields = body.model_fields_set

    updates: dict = {}
    if "credentials" in fields and body.credentials is not None:
        user = await get_current_user(request)
        _check_org_access(user, row.org_id)
        updates["credentials_encrypted"] = encrypt_credentials(body.credentials)
        # New credentials must be re-tested before syncing
        updates["status"] = ConnectionStatus.PENDING_SETUP

    if "connection_name" in fields and body.connection_name and body.connection_name != row.connection_name:
        if await repo.get_by_name(row.org_id, body.connection_name):
            raise ConflictError(f"Connection name '{body.connection_name}' already exists in this organization")
        updates["connection_name"] = body.connection_name

    if "status" in fields and body.status is not None:
        updates["status"] = body.status

    if "sync_schedule" in fields or "sync_frequency_minutes" in fields:
        schedule = body.sync_schedule if "sync_schedule" in fields else row.sync_schedule
        minutes = body.sync_frequency_minutes if "sync_frequency_minutes" in fields else row.sync_frequency_minutes
        updates["sync_schedule"] = schedule
        updates["sync_frequency_minutes"] = minutes
        updates["next_sync_at"] = compute_next_sync(schedule, minutes, utcnow())

    if updates:
        await repo.update(row, **updates)
        await db.commit()
    return _connection_to_dict(row)


@router.delete("/connections/{connection_id}")
async def delete_connection(
    connection_id: str,
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
) -> dict:
    repo = IntegrationConnectionRepository(db)
    row = await _get_connection(connection_id, db)
    _check_org_access(user, row.org_id)
    counts = await repo.related_counts(connection_id)
    await repo.delete_cascade(row)
    await db.commit()
    return {"connection_id": connection_id, "deleted": True, "removed": counts}


@router.post("/connections/{connection_id}/test")
@write_limit
async def test_connection(
    request: Request,
    connection_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict:
    result = await IntegrationService(db, request.app.state.orchestrator.adapter_factory).test_connection(
        connection_id
    )
    await db.commit()
    return result


@router.post("/connections/{connection_id}/sync", status_code=202)
@write_limit
async def trigger_sync(
    request: Request,
    connection_id: str,
    body: SyncRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: dict = RequireOperator,
    trace_id: str = Depends(get_trace_id),
    orchestrator=Depends(get_orchestrator),
) -> dict:
    body = body or SyncRequest()
    row = await _get_connection(connection_id, db)
    _check_org_access(user, row.org_id)

    job, created = await orchestrator.create_manual_sync(
        db,
        connection_id,
        job_type=body.job_type,
        priority=body.priority,
        requested_by=user["sub"],
        trace_id=trace_id,
        run_now=body.run_now,
    )
    return {"created": created, "job": job.model_dump(mode="json", exclude_none=True)}


@router.get("/connections/{connection_id}/jobs")
async def list_connection_jobs(
    connection_id: str,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    await _get_connection(connection_id, db)
    rows = await SyncJobRepository(db).list_by_connection(connection_id, limit)
    return [SyncJobModel.from_row(r).model_dump(mode="json", exclude_none=True) for r in rows]


@router.get("/connections/{connection_id}/logs")
async def list_connection_logs(
    connection_id: str,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    await _get_connection(connection_id, db)
    rows = await IntegrationLogRepository(db).list_by_connection(connection_id, limit)
    return [_log_to_dict(r) for r in rows]


@router.put("/connections/{connection_id}/schedule")
async def update_schedule(
    connection_id: str,
    body: ScheduleUpdate,
    db: AsyncSession = Depends(get_db),
    orchestrator=Depends(get_orchestrator),
) -> dict:
    row = await orchestrator.update_sync_schedule(
        db,
        connection_id,
        sync_schedule=body.sync_schedule,
        is_active=body.is_active,
        sync_frequency_minutes=body.sync_frequency_minutes,
    )
    await db.commit()
    return _connection_to_dict(row)
