"""Integration connection table."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from complio.db.base import Base, TimestampMixin


class IntegrationConnectionRow(Base, TimestampMixin):
    """Credentials plus schedule for pulling one provider's data into one org."""

    __tablename__ = "integration_connections"

    connection_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    org_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("organizations.org_id"),
        nullable=False,
        index=True,
    )
    provider_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("integration_providers.provider_id"),
        nullable=False,
    )
    connection_name: Mapped[str] = mapped_column(String(200), nullable=False)
    credentials_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending_setup")
    sync_schedule: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sync_frequency_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    next_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_error_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    auth_metadata: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)

    __table_args__ = (
        UniqueConstraint("org_id", "connection_name", name="uq_connection_org_name"),
    )
