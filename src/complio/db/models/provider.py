"""Integration provider catalogue table."""

from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from complio.db.base import Base, TimestampMixin


class IntegrationProviderRow(Base, TimestampMixin):
    """A third-party system the platform knows how to pull data from."""

    __tablename__ = "integration_providers"

    provider_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    auth_type: Mapped[str] = mapped_column(String(50), nullable=False)  # "oauth2", "aws_keys"
    data_sources: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
