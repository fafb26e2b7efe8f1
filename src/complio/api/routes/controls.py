"""Compliance control routes."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from complio.dependencies import get_db
from complio.errors.exceptions import ConflictError, NotFoundError
from complio.models.enums import ControlStatus
from complio.repositories.control_repo import ControlRepository
from complio.repositories.org_repo import OrganizationRepository
from complio.services.id_generator import generate_id

router = APIRouter(tags=["Controls"])


class ControlCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    frameworks: list[str] = Field(default_factory=list)
    status: ControlStatus = ControlStatus.NOT_STARTED


def _control_to_dict(row) -> dict:
    return {
        "control_id": row.control_id,
        "org_id": row.org_id,
        "code": row.code,
        "title": row.title,
        "description": row.description,
        "frameworks": row.frameworks or [],
        "status": row.status,
    }


@router.post("/organizations/{org_id}/controls", status_code=201)
async def create_control(
    org_id: str,
    body: ControlCreate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    if not await OrganizationRepository(db).get(org_id):
        raise NotFoundError("Organization", org_id)
    repo = ControlRepository(db)
    if await repo.get_by_code(org_id, body.code):
        raise ConflictError(f"Control code '{body.code}' already exists in this organization")

    row = await repo.create(
        control_id=generate_id("ctl_"),
        org_id=org_id,
        code=body.code,
        title=body.title,
        description=body.description,
        frameworks=body.frameworks,
        status=body.status,
    )
    await db.commit()
    return _control_to_dict(row)


@router.get("/organizations/{org_id}/controls")
async def list_controls(org_id: str, db: AsyncSession = Depends(get_db)) -> list[dict]:
    rows = await ControlRepository(db).list_by_org(org_id)
    return [_control_to_dict(r) for r in rows]
