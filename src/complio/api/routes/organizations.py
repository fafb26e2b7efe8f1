"""Organization (tenant) routes."""

import re

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from complio.dependencies import get_db
from complio.errors.exceptions import ConflictError, NotFoundError
from complio.repositories.org_repo import OrganizationRepository
from complio.services.id_generator import generate_id

router = APIRouter(tags=["Organizations"])


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: str | None = Field(None, max_length=100, pattern=r"^[a-z0-9][a-z0-9-]*$")
    description: str | None = None
    settings: dict | None = None


def _slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "org"


def _org_to_dict(row) -> dict:
    return {
        "org_id": row.org_id,
        "name": row.name,
        "slug": row.slug,
        "description": row.description,
        "settings": row.settings or {},
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


@router.post("/organizations", status_code=201)
async def create_organization(
    body: OrganizationCreate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    repo = OrganizationRepository(db)
    slug = body.slug or _slugify(body.name)
    if await repo.get_by_slug(slug):
        raise ConflictError(f"Organization slug '{slug}' is already taken")

    row = await repo.create(
        org_id=generate_id("org_"),
        name=body.name,
        slug=slug,
        description=body.description,
        settings=body.settings or {},
    )
    await db.commit()
    return _org_to_dict(row)


@router.get("/organizations")
async def list_organizations(db: AsyncSession = Depends(get_db)) -> list[dict]:
    rows = await OrganizationRepository(db).list_all()
    return [_org_to_dict(r) for r in rows]


@router.get("/organizations/{org_id}")
async def get_organization(org_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    row = await OrganizationRepository(db).get(org_id)
    if not row:
        raise NotFoundError("Organization", org_id)
    return _org_to_dict(row)
