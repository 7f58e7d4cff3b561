# ABOUTME: Clock abstraction so ledger and sweep code can be driven by tests.
# ABOUTME: SystemClock reads wall time; FixedClock is set and advanced explicitly.

from datetime import date, datetime, timedelta
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of the current local timestamp."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time, truncated to whole seconds."""

    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, at: datetime) -> None:
        self._at = at

    def now(self) -> datetime:
        return self._at

    def set(self, at: datetime) -> None:
        self._at = at

    def advance(self, delta: timedelta) -> None:
        self._at += delta


def today(clock: Clock) -> date:
    """Current calendar date according to clock."""
    return clock.now().date()
