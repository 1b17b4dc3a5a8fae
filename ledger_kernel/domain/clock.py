"""
Injectable time source for the ledger.

Every timestamp the ledger writes (entry ``created_at``, approval and void
times, audit rows, ``calculated_at`` on summaries) and the default
reconciliation window are read from a Clock handed to the service.  Only
SystemClock reads the wall clock.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

LEDGER_EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Pinned clock for tests and replays.

    Time only moves when ``tick``, ``advance`` or ``set_time`` is called,
    so rows created back to back share a timestamp unless the caller
    ticks between them.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or LEDGER_EPOCH

    def now(self) -> datetime:
        return self._current

    def set_time(self, moment: datetime) -> None:
        self._current = moment

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Move one second forward and return the new time."""
        self.advance(1)
        return self._current
