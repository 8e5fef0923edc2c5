from __future__ import annotations

from datetime import UTC, date, datetime


def now_utc() -> datetime:
    """Return timezone-aware UTC timestamp."""
    return datetime.now(tz=UTC)


def today_utc() -> date:
    """Return today's date in UTC (used for export filenames)."""
    return now_utc().date()


def elapsed_ms(start: datetime, end: datetime | None) -> int | None:
    """Milliseconds between two timestamps, or None while ``end`` is unset."""
    if end is None:
        return None
    return int((end - start).total_seconds() * 1000)
