"""
Time helpers.

All timestamps are stored and compared as timezone-aware UTC datetimes.
Services read the current time from an injected clock so tests can pin it.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """
    Get the current timezone-aware UTC datetime.
    Always use this instead of datetime.utcnow() or datetime.now().
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SystemClock:
    """Wall clock backed by :func:`utcnow`."""

    def now(self) -> datetime:
        return utcnow()


class FixedClock:
    """Clock pinned to a given instant; advance it explicitly."""

    def __init__(self, now: datetime):
        self._now = ensure_utc(now)

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = ensure_utc(now)

    def advance(self, **delta) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now


def deadline_from(clock, timeout: Optional[float]) -> Optional[datetime]:
    """Absolute deadline ``timeout`` seconds from ``clock.now()``, or ``None``."""
    if timeout is None:
        return None
    return clock.now() + timedelta(seconds=float(timeout))


def deadline_expired(clock, deadline: Optional[datetime]) -> bool:
    return deadline is not None and clock.now() >= deadline
