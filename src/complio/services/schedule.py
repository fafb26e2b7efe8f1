"""Sync schedule interpretation."""

from datetime import datetime, timedelta

from complio.errors.exceptions import ValidationError
from complio.models.enums import SyncFrequency

SCHEDULE_INTERVALS: dict[str, timedelta] = {
    SyncFrequency.HOURLY: timedelta(hours=1),
    SyncFrequency.DAILY: timedelta(days=1),
    SyncFrequency.WEEKLY: timedelta(weeks=1),
}


def schedule_interval(schedule: str | None, frequency_minutes: int | None = None) -> timedelta:
    """Resolve a schedule label (or explicit minutes) to an interval.

    ``frequency_minutes`` wins over the label when set.
    """
    if frequency_minutes is not None:
        if frequency_minutes <= 0:
            raise ValidationError("sync_frequency_minutes must be positive")
        return timedelta(minutes=frequency_minutes)
    if schedule not in SCHEDULE_INTERVALS:
        raise ValidationError(
            f"Unsupported sync schedule '{schedule}'",
            details={"allowed": [s.value for s in SyncFrequency]},
        )
    return SCHEDULE_INTERVALS[schedule]


def compute_next_sync(
    schedule: str | None,
    frequency_minutes: int | None,
    now: datetime,
) -> datetime | None:
    """Next run time for a connection, or None when it has no schedule."""
    if schedule is None and frequency_minutes is None:
        return None
    return now + schedule_interval(schedule, frequency_minutes)
