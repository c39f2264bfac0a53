# coding: utf-8
"""
UTC and local-day helpers

All timestamps are stored in UTC. SQLite drops tzinfo on the way back, so values
read from the database go through ensure_utc before any comparison.

Calendar days asked for by clients (search `date`, catalog day filters and date
ranges) are days in a named timezone, turned into UTC bounds with local_day_range.
"""
import math
from datetime import date, datetime, time, timedelta, UTC
from typing import Any, Optional

import pytz

from src.core.exceptions import ValidationError


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes, convert aware ones to UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def seconds_until(value: Optional[datetime], now: Optional[datetime] = None) -> int:
    """
    Whole seconds from now until value, floored and never negative
    """
    if value is None:
        return 0
    now = now or utcnow()
    return max(0, math.floor((ensure_utc(value) - now).total_seconds()))


def get_timezone(tz: str) -> Any:
    """
    pytz zone by IANA name

    Raises:
        ValidationError: Unknown timezone
    """
    try:
        return pytz.timezone(tz)
    except pytz.UnknownTimeZoneError:
        raise ValidationError(f"Unknown timezone '{tz}'") from None


def local_day_range(zone: Any, first: date, last: date) -> tuple[datetime, datetime]:
    """UTC bounds [start, end) covering the local days first..last inclusive"""
    start = zone.localize(datetime.combine(first, time.min))
    end = zone.localize(datetime.combine(last + timedelta(days=1), time.min))
    return start.astimezone(pytz.UTC), end.astimezone(pytz.UTC)
