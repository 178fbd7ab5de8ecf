# tours_api/core/clock.py
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


_system_clock = SystemClock()


def get_clock() -> Clock:
    """
    FastAPI dependency for the current time source.

    Tests override it with a frozen clock to hit expiry boundaries exactly.
    """
    return _system_clock


def as_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    SQLite hands back naive datetimes; everything we store is UTC, so a
    naive value is interpreted as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
