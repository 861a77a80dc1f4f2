from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return a timezone-aware UTC datetime.

    Python 3.14+ deprecates datetime.utcnow(); use timezone-aware timestamps instead.
    """

    return datetime.now(timezone.utc)


def naive_utcnow() -> datetime:
    # SQLite stores naive datetimes; keep comparisons consistent.
    return utcnow().replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Normalize a stored timestamp to naive UTC.

    Postgres returns aware datetimes for timestamptz columns while SQLite returns naive ones.
    """

    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
