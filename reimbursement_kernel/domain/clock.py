"""
reimbursement_kernel.domain.clock -- Where request timestamps come from.

``submitted_at``, ``last_updated_at`` and every status-change ``changed_at``
are read from a Clock injected into the submission and approval services,
never from ``datetime.now()``.  All times are timezone-aware UTC.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Source of the current, timezone-aware time."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that stands still until ``advance()`` is called.

    Lets an approval sequence be replayed with exact ``last_updated_at``
    values.  The start time must be timezone-aware, like every timestamp a
    request carries.
    """

    def __init__(self, start: datetime):
        if start.tzinfo is None:
            raise ValueError("DeterministicClock start time must be timezone-aware")
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> None:
        self._current += timedelta(seconds=seconds)
