"""
Time window helpers shared by the analytics services.

All windows are half-open: a sale belongs to [start, end) when
start <= sale.datetime < end. Datetimes are naive local server time.
"""
import calendar
from datetime import datetime, time, timedelta
from typing import Optional, Tuple

from clearvue.exceptions import InvalidTimeframeError

TIMEFRAMES = ('daily', 'weekly', 'monthly', 'annual', 'yearly')


def subtract_months(dt: datetime, months: int) -> datetime:
    """Move `dt` back by whole calendar months, clamping the day (Mar 31 -> Feb 28)."""
    month_index = dt.month - 1 - months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def timeframe_start(timeframe: str, now: Optional[datetime] = None) -> datetime:
    """
    Resolve a named timeframe to its window start.

    daily   -> local midnight today
    weekly  -> trailing 7 days
    monthly -> trailing 1 calendar month
    annual / yearly -> trailing 1 calendar year
    """
    if not isinstance(timeframe, str):
        raise InvalidTimeframeError(timeframe)

    now = now or datetime.now()
    key = timeframe.strip().lower()

    if key == 'daily':
        return datetime.combine(now.date(), time.min)
    if key == 'weekly':
        return now - timedelta(days=7)
    if key == 'monthly':
        return subtract_months(now, 1)
    if key in ('annual', 'yearly'):
        return subtract_months(now, 12)

    raise InvalidTimeframeError(timeframe)


def trailing_window(days: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Return (now - days, now)."""
    now = now or datetime.now()
    return now - timedelta(days=days), now


def year_range(year: int) -> Tuple[datetime, datetime]:
    """Return [Jan 1 of year, Jan 1 of next year)."""
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


def quarter_of(month: int) -> int:
    """Calendar quarter (1-4) of a month number, i.e. ceil(month / 3)."""
    return (month - 1) // 3 + 1
