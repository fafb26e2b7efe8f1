"""IntegrationService: builds provider adapters and tests connections."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.connection import IntegrationConnectionRow
from complio.errors.exceptions import CredentialError, IntegrationError, NotFoundError, ValidationError
from complio.integrations.adapters import AVAILABLE_ADAPTERS, import_adapter
from complio.integrations.adapters.base import ProviderAdapter
from complio.models.enums import ConnectionStatus
from complio.repositories.connection_repo import IntegrationConnectionRepository
from complio.repositories.provider_repo import IntegrationProviderRepository
from complio.services.credentials import ConnectionCredentials, decrypt_credentials
from complio.services.timeutil import utcnow

logger = logging.getLogger(__name__)


def build_adapter(provider_category: str, credentials: ConnectionCredentials, **kwargs) -> ProviderAdapter:
    """Instantiate the adapter registered for a provider category."""
    dotted_path = AVAILABLE_ADAPTERS.get(provider_category)
    if not dotted_path:
        raise ValidationError(f"No adapter for provider category '{provider_category}'")
    adapter_cls = import_adapter(dotted_path)
    return adapter_cls(credentials, **kwargs)


class IntegrationService:
    """Connection-level operations that talk to providers."""

    def __init__(self, session: AsyncSession, adapter_factory=build_adapter):
        self.session = session
        self.adapter_factory = adapter_factory
        self.connections = IntegrationConnectionRepository(session)
        self.providers = IntegrationProviderRepository(session)

    async def adapter_for(self, connection: IntegrationConnectionRow) -> ProviderAdapter:
        """Decrypt a connection's credentials and build its adapter.

        Raises:
            CredentialError: no stored credentials, or they cannot be decrypted.
        """
        provider = await self.providers.get(connection.provider_id)
        if not provider:
            raise NotFoundError("IntegrationProvider", connection.provider_id)
        if not connection.credentials_encrypted:
            raise CredentialError(f"Connection {connection.connection_id} has no credentials")
        credentials = decrypt_credentials(connection.credentials_encrypted)
        return self.adapter_factory(provider.category, credentials)

    async def test_connection(self, connection_id: str) -> dict:
        """Probe the provider and record the outcome on the connection."""
        connection = await self.connections.get(connection_id)
        if not connection:
            raise NotFoundError("IntegrationConnection", connection_id)

        error: str | None = None
        try:
            adapter = await self.adapter_for(connection)
            connected = await adapter.test_connection()
            if not connected:
                error = "Connection test failed"
        except (IntegrationError, CredentialError) as exc:
            connected = False
            error = str(exc)

        if connected:
            await self.connections.update(
                connection,
                status=ConnectionStatus.ACTIVE,
                last_error_message=None,
            )
            logger.info("Connection %s test succeeded", connection_id)
        else:
            await self.connections.update(
                connection,
                status=ConnectionStatus.ERROR,
                last_error_at=utcnow(),
                last_error_message=error,
            )
            logger.warning("Connection %s test failed: %s", connection_id, error)

        result = {
            "connection_id": connection_id,
            "status": connection.status,
            "connected": connected,
        }
        if error:
            result["error"] = error
        return result
