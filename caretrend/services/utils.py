"""
Utility functions shared by the status and aggregation services
"""
import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, List, NamedTuple, Optional, Sequence, TypeVar
from zoneinfo import ZoneInfo

from caretrend.core import config
from caretrend.database.schemas import DateRange

T = TypeVar("T")
R = TypeVar("R")

RISK_LEVELS = ("low", "moderate", "high", "ppd")


def is_blank(value: Any) -> bool:
    """
    True for None, empty strings and whitespace-only strings

    Numbers (including 0) are never blank.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def normalize_risk(value: Optional[str]) -> str:
    """
    Map a stored risk label to low/moderate/high/ppd/unknown

    Case-insensitive; accepts the 'high risk' style aliases found in older rows.
    """
    if not value:
        return "unknown"
    risk = value.strip().lower()
    if risk.endswith(" risk"):
        risk = risk[: -len(" risk")].strip()
    return risk if risk in RISK_LEVELS else "unknown"


def timestamp_sort_key(value: Optional[datetime]) -> str:
    # Records without a timestamp sort as oldest
    return value.isoformat() if value is not None else ""


def viewer_today(tz_name: Optional[str] = None) -> date:
    """Current calendar date for the viewer's timezone"""
    return datetime.now(ZoneInfo(tz_name or config.VIEWER_TIMEZONE)).date()


def viewer_date(value: datetime, tz_name: Optional[str] = None) -> date:
    """
    Calendar date of a stored timestamp as seen in the viewer's timezone

    Stored timestamps are naive UTC (see database.schemas).
    """
    aware = value.replace(tzinfo=timezone.utc)
    return aware.astimezone(ZoneInfo(tz_name or config.VIEWER_TIMEZONE)).date()


class MonthWindow(NamedTuple):
    key: str
    label: str
    window: DateRange


def _shift_month(year: int, month: int, delta: int):
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_windows(today: date, months: int) -> List[MonthWindow]:
    """
    Calendar months ending with the month containing today, oldest first

    Args:
        today: Reference date (its month is the last window)
        months: Number of windows, at least 1

    Returns:
        List of MonthWindow(key 'YYYY-MM', label 'Mon YYYY', [first day, first day of next month))
    """
    if months < 1:
        raise ValueError("months must be at least 1")
    windows = []
    for offset in range(months - 1, -1, -1):
        year, month = _shift_month(today.year, today.month, -offset)
        next_year, next_month = _shift_month(year, month, 1)
        start = date(year, month, 1)
        windows.append(MonthWindow(
            key=start.strftime("%Y-%m"),
            label=start.strftime("%b %Y"),
            window=DateRange(start=start, end=date(next_year, next_month, 1)),
        ))
    return windows


def week_windows(today: date, weeks: int) -> List[DateRange]:
    """
    Consecutive 7-day windows, the last one ending today (inclusive), oldest first
    """
    if weeks < 1:
        raise ValueError("weeks must be at least 1")
    end = today + timedelta(days=1)
    windows = []
    for _ in range(weeks):
        windows.append(DateRange(start=end - timedelta(days=7), end=end))
        end -= timedelta(days=7)
    return list(reversed(windows))


async def gather_bounded(
    func: Callable[[T], Awaitable[R]],
    items: Sequence[T],
    limit: Optional[int] = None,
) -> List[R]:
    """
    Run func over items concurrently, at most `limit` at a time

    Results come back in the order of items. If the caller is cancelled,
    every pending unit is cancelled with it and nothing is returned.
    """
    semaphore = asyncio.Semaphore(max(1, limit or config.GATEWAY_MAX_CONCURRENCY))

    async def run(item: T) -> R:
        async with semaphore:
            return await func(item)

    return list(await asyncio.gather(*(run(item) for item in items)))
