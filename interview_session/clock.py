"""Time source and deadline arithmetic for rounds and items."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):  # Injectable time source
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def deadline_after(start: datetime, *, minutes: Optional[float] = None, seconds: Optional[float] = None) -> Optional[datetime]:
    """Return ``start`` shifted by the given span, or ``None`` when no span is configured."""

    if minutes is None and seconds is None:
        return None
    span = timedelta(minutes=minutes or 0, seconds=seconds or 0)
    return as_utc(start) + span


def elapsed_seconds(start: Optional[datetime], now: datetime) -> float:
    if start is None:
        return 0.0
    return max(0.0, (as_utc(now) - as_utc(start)).total_seconds())


def is_expired(deadline: Optional[datetime], now: datetime) -> bool:
    """A deadline is expired from its exact instant onwards."""

    if deadline is None:
        return False
    return as_utc(now) >= as_utc(deadline)


__all__ = [
    "Clock",
    "SystemClock",
    "as_utc",
    "deadline_after",
    "elapsed_seconds",
    "is_expired",
]
