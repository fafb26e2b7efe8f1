"""Evidence records and evidence-control links."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from complio.dependencies import get_current_user, get_db
from complio.errors.exceptions import NotFoundError, ValidationError
from complio.models.enums import EvidenceStatus, EvidenceType
from complio.repositories.control_repo import ControlRepository
from complio.repositories.evidence_repo import EvidenceRepository
from complio.repositories.org_repo import OrganizationRepository
from complio.services.id_generator import generate_id

router = APIRouter(tags=["Evidence"])


class EvidenceCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    source: str = "manual_upload"
    metadata: dict | None = None


def _evidence_to_dict(row, control_ids: list[str] | None = None) -> dict:
    data = {
        "evidence_id": row.evidence_id,
        "org_id": row.org_id,
        "title": row.title,
        "description": row.description,
        "type": row.type,
        "status": row.status,
        "source": row.source,
        "added_by": row.added_by,
        "metadata": row.evidence_metadata,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }
    if control_ids is not None:
        data["control_ids"] = control_ids
    return data


@router.post("/organizations/{org_id}/evidence", status_code=201)
async def create_evidence(
    org_id: str,
    body: EvidenceCreate,
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
) -> dict:
    if not await OrganizationRepository(db).get(org_id):
        raise NotFoundError("Organization", org_id)
    row = await EvidenceRepository(db).create(
        evidence_id=generate_id("evd_"),
        org_id=org_id,
        title=body.title,
        description=body.description,
        type=EvidenceType.DOCUMENT,
        status=EvidenceStatus.DRAFT,
        source=body.source,
        added_by=user["sub"],
        evidence_metadata=body.metadata,
    )
    await db.commit()
    return _evidence_to_dict(row, [])


@router.get("/organizations/{org_id}/evidence")
async def list_evidence(
    org_id: str,
    status: EvidenceStatus | None = None,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    rows = await EvidenceRepository(db).list_by_org(org_id, status=status, limit=limit)
    return [_evidence_to_dict(r) for r in rows]


@router.get("/evidence/{evidence_id}")
async def get_evidence(evidence_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    repo = EvidenceRepository(db)
    row = await repo.get(evidence_id)
    if not row:
        raise NotFoundError("Evidence", evidence_id)
    return _evidence_to_dict(row, await repo.control_ids(evidence_id))


@router.post("/evidence/{evidence_id}/controls/{control_id}", status_code=201)
async def link_evidence_to_control(
    evidence_id: str,
    control_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict:
    repo = EvidenceRepository(db)
    evidence = await repo.get(evidence_id)
    if not evidence:
        raise NotFoundError("Evidence", evidence_id)
    control = await ControlRepository(db).get(control_id)
    if not control:
        raise NotFoundError("Control", control_id)
    if control.org_id != evidence.org_id:
        raise ValidationError("Evidence and control belong to different organizations")

    link = await repo.link_control(evidence_id, control_id)
    await db.commit()
    return {"link_id": link.link_id, "evidence_id": evidence_id, "control_id": control_id}
