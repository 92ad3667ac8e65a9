"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timezone
from typing import Tuple


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month (inclusive)"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def to_naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting to UTC; naive values pass through"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
