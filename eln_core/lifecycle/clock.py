# eln_core/lifecycle/clock.py
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock time, timezone-aware (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Clock frozen at a given instant.

    Accepts a datetime or a date (treated as midnight UTC).
    """

    def __init__(self, at):
        if isinstance(at, datetime):
            self._at = at if at.tzinfo else at.replace(tzinfo=timezone.utc)
        elif isinstance(at, date):
            self._at = datetime(at.year, at.month, at.day, tzinfo=timezone.utc)
        else:
            raise TypeError("FixedClock expects a date or datetime")

    def now(self) -> datetime:
        return self._at


SYSTEM_CLOCK = SystemClock()


def resolve_clock(clock=None) -> Clock:
    return clock if clock is not None else SYSTEM_CLOCK


def today(clock=None) -> date:
    return resolve_clock(clock).now().date()
