"""Shared HTTP plumbing for OAuth2 REST providers."""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from complio.config import settings
from complio.errors.exceptions import IntegrationError, ProviderAuthError
from complio.integrations.adapters.base import ProviderAdapter
from complio.services.credentials import ConnectionCredentials

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class TransientProviderError(IntegrationError):
    """Rate limited or server-side failure; worth retrying."""


class HttpProviderAdapter(ProviderAdapter):
    """Adds bearer auth, transient-error retry and one-shot token refresh.

    Subclasses set ``base_url`` and implement :meth:`refresh_request`.
    """

    base_url: str = ""
    max_attempts: int = 3

    def __init__(
        self,
        credentials: ConnectionCredentials,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
        retry_wait=None,
    ):
        super().__init__(credentials)
        self._transport = transport
        self._timeout = timeout or settings.http_timeout_seconds
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)
        self._http: httpx.AsyncClient | None = None
        self._refresh_lock = asyncio.Lock()

    @asynccontextmanager
    async def session(self):
        if self._http is not None:
            yield self
            return
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            self._http = client
            try:
                yield self
            finally:
                self._http = None

    # ------------------------------------------------------------------
    # Token refresh
    # ------------------------------------------------------------------

    def can_refresh(self) -> bool:
        return bool(self.credentials.refresh_token)

    @abstractmethod
    def refresh_request(self) -> tuple[str, dict]:
        """Return (token URL, form data) for refreshing the access token."""
        ...

    async def refresh_access_token(self, stale_token: str | None) -> None:
        async with self._refresh_lock:
            # Another source already refreshed while we waited
            if self.credentials.access_token != stale_token:
                return
            url, data = self.refresh_request()
            try:
                resp = await self._http.post(url, data=data)
            except httpx.HTTPError as exc:
                raise IntegrationError(self.provider_category, f"token refresh failed: {exc}") from exc
            if resp.status_code != 200:
                raise ProviderAuthError(
                    self.provider_category,
                    f"token refresh rejected with HTTP {resp.status_code}",
                    status_code=resp.status_code,
                )
            try:
                payload = resp.json()
            except ValueError as exc:
                raise IntegrationError(self.provider_category, "token refresh returned non-JSON body") from exc
            if not isinstance(payload, dict) or not payload.get("access_token"):
                raise ProviderAuthError(self.provider_category, "token refresh response has no access_token")
            self.credentials.access_token = payload["access_token"]
            if payload.get("refresh_token"):
                self.credentials.refresh_token = payload["refresh_token"]
            try:
                expires_in = int(payload.get("expires_in") or 0)
            except (TypeError, ValueError):
                expires_in = 0
            if expires_in:
                self.credentials.expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
            logger.info("Refreshed %s access token", self.provider_category)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.credentials.access_token:
            headers["Authorization"] = f"Bearer {self.credentials.access_token}"
        return headers

    async def _send(self, url: str, params: dict | None) -> httpx.Response:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type((TransientProviderError, httpx.TransportError)),
            reraise=True,
        ):
            with attempt:
                resp = await self._http.get(url, params=params, headers=self._headers())
                if resp.status_code in RETRYABLE_STATUS_CODES:
                    raise TransientProviderError(
                        self.provider_category,
                        f"HTTP {resp.status_code} from {url}",
                        status_code=resp.status_code,
                    )
        return resp

    async def get_json(self, url: str, params: dict | None = None) -> dict:
        """GET a JSON document, refreshing the token once on 401."""
        if self._http is None:
            async with self.session():
                return await self.get_json(url, params)

        token_used = self.credentials.access_token
        try:
            resp = await self._send(url, params)
            if resp.status_code == 401 and self.can_refresh():
                await self.refresh_access_token(token_used)
                resp = await self._send(url, params)
        except httpx.TransportError as exc:
            raise IntegrationError(self.provider_category, f"request to {url} failed: {exc}") from exc

        if resp.status_code in (401, 403):
            raise ProviderAuthError(
                self.provider_category,
                f"HTTP {resp.status_code} from {url}",
                status_code=resp.status_code,
            )
        if resp.status_code >= 400:
            raise IntegrationError(
                self.provider_category,
                f"HTTP {resp.status_code} from {url}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise IntegrationError(self.provider_category, f"non-JSON response from {url}") from exc
