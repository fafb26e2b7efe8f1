"""Built-in integration provider catalogue."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from complio.models.enums import ProviderCategory
from complio.repositories.provider_repo import IntegrationProviderRepository
from complio.services.id_generator import generate_id

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS: list[dict] = [
    {
        "name": "Google Workspace",
        "category": ProviderCategory.GOOGLE_WORKSPACE,
        "description": "User, group and mobile device directory via the Admin SDK",
        "auth_type": "oauth2",
        "data_sources": ["users", "groups", "devices"],
    },
    {
        "name": "Microsoft Entra ID",
        "category": ProviderCategory.MICROSOFT_ENTRA_ID,
        "description": "Users, groups and devices via Microsoft Graph",
        "auth_type": "oauth2",
        "data_sources": ["users", "groups", "devices"],
    },
    {
        "name": "AWS Config",
        "category": ProviderCategory.AWS_CONFIG,
        "description": "Resource configuration, config rules and compliance results",
        "auth_type": "aws_keys",
        "data_sources": ["configuration_items", "config_rules", "compliance_results"],
    },
]


async def seed_default_providers(session: AsyncSession) -> int:
    """Insert any missing catalogue entry. Returns the number inserted."""
    repo = IntegrationProviderRepository(session)
    inserted = 0
    for entry in DEFAULT_PROVIDERS:
        if await repo.get_by_category(entry["category"]):
            continue
        await repo.create(provider_id=generate_id("prov_"), is_active=True, **entry)
        inserted += 1
    if inserted:
        logger.info("Seeded %d integration providers", inserted)
    return inserted
