"""Job type to worker lookup."""

from complio.models.enums import JobType
from complio.workers.base import BaseWorker
from complio.workers.sync_worker import SyncWorker

WORKERS: dict[str, type[BaseWorker]] = {
    JobType.FULL_SYNC: SyncWorker,
    JobType.INCREMENTAL_SYNC: SyncWorker,
}


def get_worker(job_type: str, **kwargs) -> BaseWorker | None:
    cls = WORKERS.get(job_type)
    return cls(**kwargs) if cls else None
