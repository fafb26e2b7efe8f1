"""Integration provider catalogue routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from complio.dependencies import get_db
from complio.repositories.provider_repo import IntegrationProviderRepository

router = APIRouter(tags=["Providers"])


@router.get("/providers")
async def list_providers(db: AsyncSession = Depends(get_db)) -> list[dict]:
    rows = await IntegrationProviderRepository(db).list_active()
    return [
        {
            "provider_id": r.provider_id,
            "name": r.name,
            "category": r.category,
            "description": r.description,
            "auth_type": r.auth_type,
            "data_sources": r.data_sources,
        }
        for r in rows
    ]
