"""
Organisation wall-clock helpers.

Time entries are stored as naive local datetimes in ``settings.TIMEZONE``
so that "07:00 on the entry's calendar day" means the same thing in the
database, in the calculator and on the dashboard.
"""

from __future__ import annotations

from datetime import date, datetime, time

from paytrack.core.config import settings


def local_now() -> datetime:
    """Current wall-clock time in the organisation's zone (naive)."""
    return datetime.now(settings.tz).replace(tzinfo=None, microsecond=0)


def local_today() -> date:
    return local_now().date()


def to_local(dt: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(settings.tz).replace(tzinfo=None)


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string into a :class:`time`."""
    parts = value.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Time must be HH:MM, got {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    return time(hour, minute)
