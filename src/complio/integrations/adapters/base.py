"""Abstract base class for provider adapters and the sync result model."""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager

from pydantic import BaseModel, Field

from complio.errors.exceptions import IntegrationError
from complio.models.enums import JobType
from complio.services.credentials import ConnectionCredentials

logger = logging.getLogger(__name__)


class SyncResult(BaseModel):
    """Outcome of syncing one or more data sources from a provider."""

    success: bool
    records_processed: int = 0
    errors_count: int = 0
    duration_seconds: float = 0.0
    records: dict[str, list[dict]] = Field(default_factory=dict)
    metadata: dict = Field(default_factory=dict)
    error_details: list[dict] = Field(default_factory=list)

    def summary(self) -> dict:
        """Everything except the raw records, for persisting on the job."""
        return self.model_dump(exclude={"records"})

    @classmethod
    def merge(cls, results: list[SyncResult]) -> SyncResult:
        """Combine per-source results fetched concurrently."""
        records: dict[str, list[dict]] = {}
        metadata: dict = {}
        error_details: list[dict] = []
        for result in results:
            records.update(result.records)
            metadata.update(result.metadata)
            error_details.extend(result.error_details)
        return cls(
            success=all(r.success for r in results),
            records_processed=sum(r.records_processed for r in results),
            errors_count=sum(r.errors_count for r in results),
            duration_seconds=max((r.duration_seconds for r in results), default=0.0),
            records=records,
            metadata=metadata,
            error_details=error_details,
        )


class ProviderAdapter(ABC):
    """Pulls directory or configuration data from one provider."""

    provider_category: str = "unknown"
    data_sources: tuple[str, ...] = ()
    primary_source: str = ""

    def __init__(self, credentials: ConnectionCredentials):
        self.credentials = credentials

    @asynccontextmanager
    async def session(self):
        """Hold provider resources (HTTP client etc.) for a batch of calls."""
        yield self

    @abstractmethod
    async def test_connection(self) -> bool:
        """Test connectivity and credentials.

        Returns:
            True if the provider accepted the credentials.

        Raises:
            IntegrationError: the provider call failed outright.
        """
        ...

    @abstractmethod
    async def fetch_source(self, source: str) -> list[dict]:
        """Fetch every record of one data source, following pagination."""
        ...

    def sources_for(self, job_type: str) -> tuple[str, ...]:
        if job_type == JobType.INCREMENTAL_SYNC:
            return (self.primary_source,)
        return self.data_sources

    async def sync(self, job_type: str = JobType.FULL_SYNC) -> SyncResult:
        """Sync the sources for ``job_type`` concurrently and merge the results."""
        sources = self.sources_for(job_type)
        async with self.session():
            results = await asyncio.gather(*(self.sync_source(source) for source in sources))
        merged = SyncResult.merge(list(results))
        merged.metadata["job_type"] = str(job_type)
        merged.metadata["provider"] = self.provider_category
        return merged

    async def sync_source(self, source: str) -> SyncResult:
        """Fetch one source; provider failures are captured, not raised."""
        started = time.monotonic()
        try:
            records = await self.fetch_source(source)
        except IntegrationError as exc:
            logger.warning("%s sync of %s failed: %s", self.provider_category, source, exc)
            return SyncResult(
                success=False,
                errors_count=1,
                duration_seconds=time.monotonic() - started,
                metadata={f"{source}_count": 0},
                error_details=[{"source": source, "error": str(exc), "type": type(exc).__name__}],
            )

        return SyncResult(
            success=True,
            records_processed=len(records),
            duration_seconds=time.monotonic() - started,
            records={source: records},
            metadata={f"{source}_count": len(records)},
        )
