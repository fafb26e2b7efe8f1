"""Evidence, automated evidence and evidence-control link tables."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from complio.db.base import Base, TimestampMixin


class EvidenceRow(Base, TimestampMixin):
    __tablename__ = "evidence"

    evidence_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    org_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("organizations.org_id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    source: Mapped[str] = mapped_column(String(100), nullable=False)
    added_by: Mapped[str] = mapped_column(String(128), nullable=False)
    evidence_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)


class EvidenceControlRow(Base, TimestampMixin):
    __tablename__ = "evidence_controls"

    link_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    evidence_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("evidence.evidence_id"), nullable=False, index=True
    )
    control_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("controls.control_id"), nullable=False, index=True
    )

    __table_args__ = (
        UniqueConstraint("evidence_id", "control_id", name="uq_evidence_control"),
    )


class AutomatedEvidenceRow(Base, TimestampMixin):
    """Evidence generated from integration data, awaiting human review."""

    __tablename__ = "automated_evidence"

    automated_evidence_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    org_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("organizations.org_id"), nullable=False, index=True
    )
    connection_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("integration_connections.connection_id"),
        nullable=False,
        index=True,
    )
    evidence_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("evidence.evidence_id"), nullable=False
    )
    job_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    rule_id: Mapped[str] = mapped_column(String(100), nullable=False)
    automation_status: Mapped[str] = mapped_column(String(50), nullable=False, default="generated")
    processed_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    records_accepted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_rejected: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    control_mappings: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    quality_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    review: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)
