"""Calendar-date helpers for journal entries.

Everything here works on ``datetime.date`` values (no time of day). Functions that need
"today" accept an explicit ``reference`` date so callers and tests can pin the clock.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

DATE_FORMAT = "%Y-%m-%d"

Clock = Callable[[], date]


def today(timezone: str = "UTC") -> date:
    """Return the current calendar date in ``timezone``."""
    return datetime.now(ZoneInfo(timezone)).date()


def days_ago(days: int, *, reference: date | None = None) -> date:
    """Return the date ``days`` calendar days before ``reference`` (default: today in UTC)."""
    return (reference or today()) - timedelta(days=days)


def compute_streak(dates: Iterable[date], *, reference: date | None = None) -> int:
    """Count consecutive days with entries, walking backward from ``reference``.

    This is the current streak, not the longest one: a set that does not contain
    ``reference`` yields 0.
    """
    present = set(dates)
    check_date = reference or today()
    streak = 0
    while check_date in present:
        streak += 1
        check_date -= timedelta(days=1)
    return streak


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def make_clock(timezone: str) -> Clock:
    """Build a zero-argument "today" provider bound to ``timezone``."""
    zone = ZoneInfo(timezone)

    def _today() -> date:
        return datetime.now(zone).date()

    return _today
