"""UTC helpers.

SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
columns; every stored timestamp is UTC, so naive values are read as UTC.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
