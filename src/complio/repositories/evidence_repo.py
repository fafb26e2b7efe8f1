"""Repositories for evidence, evidence-control links and automated evidence."""

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.evidence import AutomatedEvidenceRow, EvidenceControlRow, EvidenceRow
from complio.repositories.base import BaseRepository
from complio.services.id_generator import generate_id


class EvidenceRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, EvidenceRow)

    async def get(self, evidence_id: str) -> EvidenceRow | None:
        return await self.get_by_id("evidence_id", evidence_id)

    async def list_by_org(self, org_id: str, status: str | None = None, limit: int = 100) -> list[EvidenceRow]:
        conditions = [EvidenceRow.org_id == org_id]
        if status:
            conditions.append(EvidenceRow.status == status)
        stmt = (
            select(EvidenceRow)
            .where(*conditions)
            .order_by(EvidenceRow.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def link_control(self, evidence_id: str, control_id: str) -> EvidenceControlRow:
        """Link evidence to a control; returns the existing link when present."""
        stmt = select(EvidenceControlRow).where(
            and_(
                EvidenceControlRow.evidence_id == evidence_id,
                EvidenceControlRow.control_id == control_id,
            )
        )
        result = await self.session.execute(stmt)
        existing = result.scalar_one_or_none()
        if existing:
            return existing
        link = EvidenceControlRow(
            link_id=generate_id("evl_"),
            evidence_id=evidence_id,
            control_id=control_id,
        )
        self.session.add(link)
        await self.session.flush()
        return link

    async def control_ids(self, evidence_id: str) -> list[str]:
        stmt = select(EvidenceControlRow.control_id).where(EvidenceControlRow.evidence_id == evidence_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class AutomatedEvidenceRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, AutomatedEvidenceRow)

    async def get(self, automated_evidence_id: str) -> AutomatedEvidenceRow | None:
        return await self.get_by_id("automated_evidence_id", automated_evidence_id)

    async def list_by_org(self, org_id: str, limit: int = 50) -> list[AutomatedEvidenceRow]:
        stmt = (
            select(AutomatedEvidenceRow)
            .where(AutomatedEvidenceRow.org_id == org_id)
            .order_by(AutomatedEvidenceRow.generated_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def stats_by_status(self, org_id: str) -> list[tuple[str, int, float | None]]:
        """Return (automation_status, count, avg quality score) per status."""
        stmt = (
            select(
                AutomatedEvidenceRow.automation_status,
                func.count(AutomatedEvidenceRow.automated_evidence_id),
                func.avg(AutomatedEvidenceRow.quality_score),
            )
            .where(AutomatedEvidenceRow.org_id == org_id)
            .group_by(AutomatedEvidenceRow.automation_status)
        )
        result = await self.session.execute(stmt)
        return [(status, count, avg) for status, count, avg in result.all()]
