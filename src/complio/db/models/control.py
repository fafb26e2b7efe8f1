"""Compliance control table."""

from sqlalchemy import JSON, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from complio.db.base import Base, TimestampMixin


class ControlRow(Base, TimestampMixin):
    __tablename__ = "controls"

    control_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    org_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("organizations.org_id"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    frameworks: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="not_started")

    __table_args__ = (
        UniqueConstraint("org_id", "code", name="uq_control_org_code"),
    )
