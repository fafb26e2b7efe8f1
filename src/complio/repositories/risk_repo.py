"""Risk and risk treatment repositories."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.risk import RiskRow, RiskTreatmentRow
from complio.repositories.base import BaseRepository


class RiskRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, RiskRow)

    async def get(self, risk_id: str) -> RiskRow | None:
        return await self.get_by_id("risk_id", risk_id)

    async def list_by_org(
        self,
        org_id: str,
        status: str | None = None,
        severity: str | None = None,
    ) -> list[RiskRow]:
        conditions = [RiskRow.org_id == org_id]
        if status:
            conditions.append(RiskRow.status == status)
        if severity:
            conditions.append(RiskRow.severity_inherent == severity)
        stmt = select(RiskRow).where(*conditions).order_by(RiskRow.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class RiskTreatmentRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, RiskTreatmentRow)

    async def list_by_risk(self, risk_id: str) -> list[RiskTreatmentRow]:
        return await self.list_by_field("risk_id", risk_id, order_by="created_at")
