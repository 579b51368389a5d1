# ============================================================================
# COR-SAFE — Clock collaborators
# ============================================================================
# The engine never reads the wall clock directly; every component takes a
# Clock so overdue checks and timestamps are deterministic under test.
# ============================================================================

import datetime
from abc import ABC, abstractmethod
from typing import Optional, Union

UTC = datetime.timezone.utc


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime.datetime:
        pass


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime.datetime:
        return datetime.datetime.now(UTC)


class FixedClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, current: Union[datetime.datetime, str]):
        self._current = parse_datetime(current)

    def now(self) -> datetime.datetime:
        return self._current

    def set(self, current: Union[datetime.datetime, str]) -> None:
        self._current = parse_datetime(current)

    def advance(self, **delta) -> datetime.datetime:
        self._current = self._current + datetime.timedelta(**delta)
        return self._current


def parse_datetime(value: Union[datetime.datetime, datetime.date, str, None]) -> Optional[datetime.datetime]:
    """Coerce ISO strings / dates into timezone-aware datetimes (naive values are taken as UTC)."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.datetime.fromisoformat(text)
    elif not isinstance(value, datetime.datetime):
        value = datetime.datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def format_datetime(value: Optional[datetime.datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()
