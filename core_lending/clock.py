"""
Clock Module

Injectable source of "now" so that no component reads the wall clock directly.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone, timedelta
from threading import RLock
from typing import Optional


class Clock(ABC):
    """Supplies the current reference instant"""

    @abstractmethod
    def now(self) -> datetime:
        """Current instant (timezone-aware, UTC)"""
        pass

    def today(self) -> date:
        """Current calendar date in UTC"""
        return self.now().date()


class SystemClock(Clock):
    """Wall clock in UTC"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """
    Clock frozen at a given instant; tests move it explicitly with
    set() or advance().
    """

    def __init__(self, instant: Optional[datetime] = None):
        self._lock = RLock()
        self._instant = self._normalize(instant or datetime(2024, 1, 1, tzinfo=timezone.utc))

    @staticmethod
    def _normalize(value) -> datetime:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value
        # Plain date: midnight UTC
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    def now(self) -> datetime:
        with self._lock:
            return self._instant

    def set(self, value) -> None:
        """Move the clock to a datetime or date"""
        with self._lock:
            self._instant = self._normalize(value)

    def advance(self, **kwargs) -> datetime:
        """Advance by a timedelta expressed as keyword arguments, e.g. days=1"""
        with self._lock:
            self._instant = self._instant + timedelta(**kwargs)
            return self._instant
