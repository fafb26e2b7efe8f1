"""Integration log table: one row per finished sync attempt."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from complio.db.base import Base, TimestampMixin


class IntegrationLogRow(Base, TimestampMixin):
    __tablename__ = "integration_logs"

    log_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    org_id: Mapped[str] = mapped_column(String(128), ForeignKey("organizations.org_id"), nullable=False)
    connection_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("integration_connections.connection_id"),
        nullable=False,
        index=True,
    )
    job_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    provider: Mapped[str] = mapped_column(String(200), nullable=False)
    sync_type: Mapped[str] = mapped_column(String(20), nullable=False)  # "scheduled" or "manual"
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # "success" or "failed"
    records_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    error_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    log_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
