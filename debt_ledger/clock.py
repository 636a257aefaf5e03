"""Injectable clocks.

Services never read the wall clock directly; they ask a clock for ``now()``
(timezone-aware) or ``today()`` (the local calendar date in the clock's zone).
"""

from datetime import date, datetime, timedelta, tzinfo
from typing import Protocol


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    """Wall clock in a fixed time zone."""

    def __init__(self, zone: tzinfo) -> None:
        self.zone = zone

    def now(self) -> datetime:
        return datetime.now(self.zone)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock frozen at a given instant, for batch replays and tests."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("FixedClock needs a timezone-aware instant")
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def today(self) -> date:
        return self._instant.date()

    def advance(self, days: int = 0, hours: int = 0) -> None:
        """Move the clock forward."""
        self._instant = self._instant + timedelta(days=days, hours=hours)

    def move_to(self, instant: datetime) -> None:
        """Jump to ``instant``; used when replaying events in order."""
        if instant.tzinfo is None:
            raise ValueError("FixedClock needs a timezone-aware instant")
        self._instant = instant
