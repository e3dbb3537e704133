"""Sources of the current time, replaceable for deterministic output."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone, tzinfo


class TimeSource(ABC):
    """Supplies the current time and durations measured against it."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time."""

    @abstractmethod
    def since(self, moment: datetime) -> timedelta:
        """Return the time elapsed since ``moment``."""


class FixedTimeSource(TimeSource):
    """A time source that stands still until advanced explicitly."""

    def __init__(self, at: datetime) -> None:
        self._time = at

    def now(self) -> datetime:
        return self._time

    def since(self, moment: datetime) -> timedelta:
        return self._time - moment

    def advance(self, by: timedelta) -> None:
        """Move the fixed time forward by ``by``."""
        self._time = self._time + by


class LocatedTimeSource(TimeSource):
    """The real clock, reported in a given time zone."""

    def __init__(self, tz: tzinfo) -> None:
        self._tz = tz

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def since(self, moment: datetime) -> timedelta:
        return datetime.now(timezone.utc) - moment


def fixed_time_source(at: datetime) -> FixedTimeSource:
    """Return a time source that always reports ``at``."""
    return FixedTimeSource(at)


def default_time_source() -> LocatedTimeSource:
    """Return the real clock in the zero-offset zone named GMT, as S3 uses."""
    return LocatedTimeSource(timezone(timedelta(0), "GMT"))