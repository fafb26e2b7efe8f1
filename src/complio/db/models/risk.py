"""Risk register and treatment plan tables."""

from sqlalchemy import Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from complio.db.base import Base, TimestampMixin


class RiskRow(Base, TimestampMixin):
    __tablename__ = "risks"

    risk_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    org_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("organizations.org_id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    likelihood_inherent: Mapped[str] = mapped_column(String(50), nullable=False)
    impact_inherent: Mapped[str] = mapped_column(String(50), nullable=False)
    severity_inherent: Mapped[str] = mapped_column(String(50), nullable=False)
    likelihood_residual: Mapped[str | None] = mapped_column(String(50), nullable=True)
    impact_residual: Mapped[str | None] = mapped_column(String(50), nullable=True)
    severity_residual: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="identified")
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)


class RiskTreatmentRow(Base, TimestampMixin):
    __tablename__ = "risk_treatments"

    treatment_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    risk_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("risks.risk_id"), nullable=False, index=True
    )
    strategy: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="planned")
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    effectiveness_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    budget_allocated: Mapped[float | None] = mapped_column(Float, nullable=True)
    actual_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
