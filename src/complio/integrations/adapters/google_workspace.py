"""Google Workspace adapter: Admin SDK Directory API."""

from __future__ import annotations

import logging

from complio.integrations.adapters.http import HttpProviderAdapter
from complio.models.enums import ProviderCategory

logger = logging.getLogger(__name__)

PAGE_SIZE = 500
TOKEN_URL = "https://oauth2.googleapis.com/token"

# data source → (path, response key)
_SOURCES: dict[str, tuple[str, str]] = {
    "users": ("/admin/directory/v1/users", "users"),
    "groups": ("/admin/directory/v1/groups", "groups"),
    "devices": ("/admin/directory/v1/customer/my_customer/devices/mobile", "mobiledevices"),
}


class GoogleWorkspaceAdapter(HttpProviderAdapter):
    """Pulls users, groups and mobile devices.

    Credentials used: ``access_token``, optionally ``refresh_token`` with
    ``client_id``/``client_secret`` for refresh, and ``domain`` to scope the
    directory listing (defaults to the whole customer).
    """

    provider_category = ProviderCategory.GOOGLE_WORKSPACE
    data_sources = ("users", "groups", "devices")
    primary_source = "users"
    base_url = "https://www.googleapis.com"

    def refresh_request(self) -> tuple[str, dict]:
        return TOKEN_URL, {
            "client_id": self.credentials.client_id or "",
            "client_secret": self.credentials.client_secret or "",
            "refresh_token": self.credentials.refresh_token or "",
            "grant_type": "refresh_token",
        }

    def _scope_params(self) -> dict:
        if self.credentials.domain:
            return {"domain": self.credentials.domain}
        return {"customer": "my_customer"}

    async def test_connection(self) -> bool:
        params = {**self._scope_params(), "maxResults": 1}
        async with self.session():
            await self.get_json(f"{self.base_url}/admin/directory/v1/users", params)
        logger.info("Google Workspace connection test succeeded")
        return True

    async def fetch_source(self, source: str) -> list[dict]:
        if source not in _SOURCES:
            raise ValueError(f"Unknown Google Workspace data source: {source}")
        path, key = _SOURCES[source]
        params: dict = {"maxResults": PAGE_SIZE}
        if source != "devices":
            params.update(self._scope_params())

        records: list[dict] = []
        page_token: str | None = None
        while True:
            if page_token:
                params["pageToken"] = page_token
            payload = await self.get_json(f"{self.base_url}{path}", params)
            records.extend(payload.get(key, []))
            page_token = payload.get("nextPageToken")
            if not page_token:
                break

        logger.info("Fetched %d Google Workspace %s", len(records), source)
        return records
