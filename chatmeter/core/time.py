"""Time helpers.

We keep DB timestamps naive (no tzinfo) but always in UTC to avoid mixing
offset-aware/naive datetimes while remaining explicit about the timezone.
"""

from __future__ import annotations

from datetime import UTC, date, datetime


def utcnow() -> datetime:
    """Naive UTC datetime (tzinfo stripped)."""
    return datetime.now(UTC).replace(tzinfo=None)


def utc_today(now: datetime | None = None) -> date:
    """Calendar day in UTC used to bucket daily counters."""
    return (now or utcnow()).date()


def month_start_key(now: datetime | None = None) -> str:
    """Cycle key for subjects without a paid subscription."""
    current = now or utcnow()
    return current.replace(day=1).strftime("%Y-%m-%d")
