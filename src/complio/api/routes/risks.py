"""Risk register routes: risks, treatments, scoring and effectiveness."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from complio.dependencies import get_db
from complio.errors.exceptions import NotFoundError, ValidationError
from complio.models.enums import (
    RiskCategory,
    RiskImpact,
    RiskLikelihood,
    RiskStatus,
    TreatmentStatus,
    TreatmentStrategy,
)
from complio.repositories.org_repo import OrganizationRepository
from complio.repositories.risk_repo import RiskRepository, RiskTreatmentRepository
from complio.services.id_generator import generate_id
from complio.services.risk_scoring import calculate_risk_score, risk_score, treatment_effectiveness

router = APIRouter(tags=["Risks"])


# --- Request models ---


class RiskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    category: RiskCategory
    likelihood: RiskLikelihood
    impact: RiskImpact
    owner_id: str


class RiskUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = None
    status: RiskStatus | None = None
    likelihood: RiskLikelihood | None = None
    impact: RiskImpact | None = None
    likelihood_residual: RiskLikelihood | None = None
    impact_residual: RiskImpact | None = None
    owner_id: str | None = None


class TreatmentCreate(BaseModel):
    strategy: TreatmentStrategy
    description: str = Field(..., min_length=1)
    owner_id: str
    status: TreatmentStatus = TreatmentStatus.PLANNED
    effectiveness_rating: float | None = Field(None, ge=0, le=100)
    budget_allocated: float | None = Field(None, ge=0)
    actual_cost: float | None = Field(None, ge=0)


class ScoreRequest(BaseModel):
    likelihood: str
    impact: str


# --- Helpers ---


def _risk_to_dict(row) -> dict:
    return {
        "risk_id": row.risk_id,
        "org_id": row.org_id,
        "title": row.title,
        "description": row.description,
        "category": row.category,
        "likelihood_inherent": row.likelihood_inherent,
        "impact_inherent": row.impact_inherent,
        "severity_inherent": row.severity_inherent,
        "likelihood_residual": row.likelihood_residual,
        "impact_residual": row.impact_residual,
        "severity_residual": row.severity_residual,
        "status": row.status,
        "owner_id": row.owner_id,
    }


def _treatment_to_dict(row) -> dict:
    return {
        "treatment_id": row.treatment_id,
        "risk_id": row.risk_id,
        "strategy": row.strategy,
        "description": row.description,
        "status": row.status,
        "owner_id": row.owner_id,
        "effectiveness_rating": row.effectiveness_rating,
        "budget_allocated": row.budget_allocated,
        "actual_cost": row.actual_cost,
    }


async def _get_risk(risk_id: str, db: AsyncSession):
    row = await RiskRepository(db).get(risk_id)
    if not row:
        raise NotFoundError("Risk", risk_id)
    return row


# --- Routes ---


@router.post("/risks/score")
async def score_risk(body: ScoreRequest) -> dict:
    return {
        "likelihood": body.likelihood,
        "impact": body.impact,
        "score": risk_score(body.likelihood, body.impact),
        "severity": calculate_risk_score(body.likelihood, body.impact),
    }


@router.post("/organizations/{org_id}/risks", status_code=201)
async def create_risk(
    org_id: str,
    body: RiskCreate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    if not await OrganizationRepository(db).get(org_id):
        raise NotFoundError("Organization", org_id)
    row = await RiskRepository(db).create(
        risk_id=generate_id("risk_"),
        org_id=org_id,
        title=body.title,
        description=body.description,
        category=body.category,
        likelihood_inherent=body.likelihood,
        impact_inherent=body.impact,
        severity_inherent=calculate_risk_score(body.likelihood, body.impact),
        status=RiskStatus.IDENTIFIED,
        owner_id=body.owner_id,
    )
    await db.commit()
    return _risk_to_dict(row)


@router.get("/organizations/{org_id}/risks")
async def list_risks(
    org_id: str,
    status: RiskStatus | None = None,
    severity: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    rows = await RiskRepository(db).list_by_org(org_id, status=status, severity=severity)
    return [_risk_to_dict(r) for r in rows]


@router.get("/risks/{risk_id}")
async def get_risk(risk_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    return _risk_to_dict(await _get_risk(risk_id, db))


@router.put("/risks/{risk_id}")
async def update_risk(
    risk_id: str,
    body: RiskUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    row = await _get_risk(risk_id, db)
    fields = body.model_fields_set
    updates: dict = {}

    for field in ("title", "description", "status", "owner_id"):
        if field in fields and getattr(body, field) is not None:
            updates[field] = getattr(body, field)

    if "likelihood" in fields or "impact" in fields:
        likelihood = body.likelihood or row.likelihood_inherent
        impact = body.impact or row.impact_inherent
        updates.update(
            likelihood_inherent=likelihood,
            impact_inherent=impact,
            severity_inherent=calculate_risk_score(likelihood, impact),
        )

    if "likelihood_residual" in fields or "impact_residual" in fields:
        likelihood = body.likelihood_residual or row.likelihood_residual
        impact = body.impact_residual or row.impact_residual
        if not (likelihood and impact):
            raise ValidationError("Residual scoring needs both likelihood_residual and impact_residual")
        updates.update(
            likelihood_residual=likelihood,
            impact_residual=impact,
            severity_residual=calculate_risk_score(likelihood, impact),
        )

    if updates:
        await RiskRepository(db).update(row, **updates)
        await db.commit()
    return _risk_to_dict(row)


@router.post("/risks/{risk_id}/treatments", status_code=201)
async def add_treatment(
    risk_id: str,
    body: TreatmentCreate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    risk = await _get_risk(risk_id, db)
    row = await RiskTreatmentRepository(db).create(
        treatment_id=generate_id("rtr_"),
        risk_id=risk_id,
        strategy=body.strategy,
        description=body.description,
        status=body.status,
        owner_id=body.owner_id,
        effectiveness_rating=body.effectiveness_rating,
        budget_allocated=body.budget_allocated,
        actual_cost=body.actual_cost,
    )
    if risk.status in (RiskStatus.IDENTIFIED, RiskStatus.ASSESSED):
        await RiskRepository(db).update(risk, status=RiskStatus.TREATING)
    await db.commit()
    return _treatment_to_dict(row)


@router.get("/risks/{risk_id}/treatments")
async def list_treatments(risk_id: str, db: AsyncSession = Depends(get_db)) -> list[dict]:
    await _get_risk(risk_id, db)
    rows = await RiskTreatmentRepository(db).list_by_risk(risk_id)
    return [_treatment_to_dict(r) for r in rows]


@router.get("/risks/{risk_id}/effectiveness")
async def get_treatment_effectiveness(risk_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    await _get_risk(risk_id, db)
    rows = await RiskTreatmentRepository(db).list_by_risk(risk_id)
    return {"risk_id": risk_id, **treatment_effectiveness(rows)}
