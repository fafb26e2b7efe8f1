"""Automated evidence listing, statistics, rules and human review."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from complio.dependencies import RequireReviewer, get_db
from complio.errors.exceptions import NotFoundError
from complio.models.enums import ProviderCategory
from complio.repositories.evidence_repo import AutomatedEvidenceRepository
from complio.services.evidence.engine import evidence_stats, validate_evidence
from complio.services.evidence.rules import get_generation_rules

router = APIRouter(tags=["Evidence Automation"])


class ReviewDecision(BaseModel):
    approved: bool
    comments: str | None = Field(None, max_length=4000)


def _automated_to_dict(row, include_items: bool = False) -> dict:
    data = {
        "automated_evidence_id": row.automated_evidence_id,
        "org_id": row.org_id,
        "connection_id": row.connection_id,
        "evidence_id": row.evidence_id,
        "job_id": row.job_id,
        "rule_id": row.rule_id,
        "automation_status": row.automation_status,
        "records_accepted": row.records_accepted,
        "records_rejected": row.records_rejected,
        "control_mappings": row.control_mappings,
        "quality_score": row.quality_score,
        "review": row.review,
        "generated_at": row.generated_at.isoformat() if row.generated_at else None,
        "validated_at": row.validated_at.isoformat() if row.validated_at else None,
        "approved_at": row.approved_at.isoformat() if row.approved_at else None,
    }
    if include_items:
        data["processed_data"] = row.processed_data
    return data


@router.get("/organizations/{org_id}/evidence-automation")
async def list_automated_evidence(
    org_id: str,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    rows = await AutomatedEvidenceRepository(db).list_by_org(org_id, limit)
    return [_automated_to_dict(r) for r in rows]


@router.get("/organizations/{org_id}/evidence-automation/stats")
async def get_evidence_stats(
    org_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await evidence_stats(db, org_id)


@router.get("/evidence-automation/rules/{provider_category}")
async def list_generation_rules(provider_category: ProviderCategory) -> list[dict]:
    return [rule.model_dump(mode="json") for rule in get_generation_rules(provider_category)]


@router.get("/evidence-automation/{automated_evidence_id}")
async def get_automated_evidence(
    automated_evidence_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict:
    row = await AutomatedEvidenceRepository(db).get(automated_evidence_id)
    if not row:
        raise NotFoundError("AutomatedEvidence", automated_evidence_id)
    return _automated_to_dict(row, include_items=True)


@router.post("/evidence-automation/{automated_evidence_id}/validate")
async def review_automated_evidence(
    automated_evidence_id: str,
    body: ReviewDecision,
    db: AsyncSession = Depends(get_db),
    user: dict = RequireReviewer,
) -> dict:
    row = await validate_evidence(
        db,
        automated_evidence_id,
        approver_id=user["sub"],
        approved=body.approved,
        comments=body.comments,
    )
    await db.commit()
    return _automated_to_dict(row)
