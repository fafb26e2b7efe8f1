"""Microsoft Entra ID adapter: Microsoft Graph v1.0."""

from __future__ import annotations

import logging

from complio.integrations.adapters.http import HttpProviderAdapter
from complio.models.enums import ProviderCategory

logger = logging.getLogger(__name__)

PAGE_SIZE = 999
GRAPH_SCOPE = "https://graph.microsoft.com/.default"

_SELECT: dict[str, str] = {
    "users": "id,displayName,userPrincipalName,mail,accountEnabled,createdDateTime,signInActivity",
    "groups": "id,displayName,mail,securityEnabled,mailEnabled,groupTypes,createdDateTime",
    "devices": "id,displayName,operatingSystem,operatingSystemVersion,isCompliant,isManaged,approximateLastSignInDateTime",
}


class MicrosoftEntraAdapter(HttpProviderAdapter):
    """Pulls users, groups and devices.

    Refresh uses the stored ``refresh_token`` when present, otherwise the
    client credentials grant with ``client_id``/``client_secret``/``tenant_id``.
    """

    provider_category = ProviderCategory.MICROSOFT_ENTRA_ID
    data_sources = ("users", "groups", "devices")
    primary_source = "users"
    base_url = "https://graph.microsoft.com/v1.0"

    def can_refresh(self) -> bool:
        creds = self.credentials
        if creds.refresh_token:
            return True
        return bool(creds.client_id and creds.client_secret and creds.tenant_id)

    def refresh_request(self) -> tuple[str, dict]:
        creds = self.credentials
        url = f"https://login.microsoftonline.com/{creds.tenant_id or 'common'}/oauth2/v2.0/token"
        data = {"client_id": creds.client_id or "", "scope": GRAPH_SCOPE}
        if creds.client_secret:
            data["client_secret"] = creds.client_secret
        if creds.refresh_token:
            data.update(grant_type="refresh_token", refresh_token=creds.refresh_token)
        else:
            data["grant_type"] = "client_credentials"
        return url, data

    async def test_connection(self) -> bool:
        async with self.session():
            await self.get_json(f"{self.base_url}/organization")
        logger.info("Microsoft Entra ID connection test succeeded")
        return True

    async def fetch_source(self, source: str) -> list[dict]:
        if source not in _SELECT:
            raise ValueError(f"Unknown Entra ID data source: {source}")

        records: list[dict] = []
        url: str | None = f"{self.base_url}/{source}"
        params: dict | None = {"$select": _SELECT[source], "$top": PAGE_SIZE}
        while url:
            payload = await self.get_json(url, params)
            records.extend(payload.get("value", []))
            # nextLink already carries the query string
            url = payload.get("@odata.nextLink")
            params = None

        logger.info("Fetched %d Entra ID %s", len(records), source)
        return records
