"""Master API router mounted at /api/v1."""

from fastapi import APIRouter
from complio.api.routes import (
    connections,
    controls,
    evidence,
    evidence_automation,
    health,
    jobs,
    organizations,
    providers,
    risks,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(organizations.router)
api_router.include_router(providers.router)
api_router.include_router(connections.router)
api_router.include_router(jobs.router)
api_router.include_router(evidence_automation.router)
api_router.include_router(controls.router)
api_router.include_router(evidence.router)
api_router.include_router(risks.router)
