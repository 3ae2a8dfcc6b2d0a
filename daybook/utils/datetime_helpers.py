"""
Standardized Date/Time Handling Utilities

Every per-day record is keyed by a calendar date string (YYYY-MM-DD) in the
owning user's timezone. This module is the one place that decides what
"today" means for a user.

RULES:
- Timestamps are stored in UTC (use now_utc())
- Date keys are computed in the user's timezone (use today_in_timezone())
- An unknown or empty timezone falls back to UTC, it never raises
"""

import logging
from datetime import datetime, date, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from daybook.exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"
DATE_KEY_FORMAT = "%Y-%m-%d"

GROUP_BY_OPTIONS = ("none", "day", "week", "month", "year")


def resolve_timezone(tz_name: Optional[str]) -> ZoneInfo:
    """
    Resolve an IANA zone name, failing closed to UTC

    Args:
        tz_name: Zone name such as "America/New_York" (may be empty)

    Returns:
        ZoneInfo for the zone, or UTC if it is missing or unknown
    """
    if not tz_name:
        return ZoneInfo(DEFAULT_TIMEZONE)

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning(f"Invalid timezone '{tz_name}', using {DEFAULT_TIMEZONE}: {e}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def is_valid_timezone(tz_name: str) -> bool:
    try:
        ZoneInfo(tz_name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(ZoneInfo("UTC"))


def today_in_timezone(tz_name: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Current calendar date in a timezone, as a YYYY-MM-DD key

    Args:
        tz_name: IANA zone name; invalid or empty means UTC
        now: Instant to evaluate (defaults to the wall clock). A naive value
            is taken as UTC.

    Returns:
        Date key such as "2024-01-05"
    """
    if now is None:
        now = now_utc()
    elif now.tzinfo is None:
        now = now.replace(tzinfo=ZoneInfo("UTC"))

    return now.astimezone(resolve_timezone(tz_name)).strftime(DATE_KEY_FORMAT)


def format_time_in_timezone(moment: datetime, tz_name: Optional[str], fmt: str = "%H:%M:%S") -> str:
    """Format an instant as wall-clock time in a zone"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=ZoneInfo("UTC"))
    return moment.astimezone(resolve_timezone(tz_name)).strftime(fmt)


def parse_date_key(value: str, field: str = "date") -> date:
    """
    Parse a strict YYYY-MM-DD date key

    Raises:
        ValidationError: If the value is not a valid calendar date key
    """
    if not isinstance(value, str) or len(value) != 10:
        raise ValidationError("must be a date in YYYY-MM-DD format", field=field, value=value)
    try:
        return datetime.strptime(value, DATE_KEY_FORMAT).date()
    except ValueError:
        raise ValidationError("must be a date in YYYY-MM-DD format", field=field, value=value)


def to_date_key(value: date) -> str:
    return value.strftime(DATE_KEY_FORMAT)


def previous_date_key(date_key: str) -> str:
    """Calendar date before the given key"""
    return to_date_key(parse_date_key(date_key) - timedelta(days=1))


def days_between(earlier: str, later: str) -> int:
    """Whole days from earlier to later (negative if reversed)"""
    return (parse_date_key(later) - parse_date_key(earlier)).days


def period_start(date_key: str, group_by: str, range_start: Optional[str] = None) -> str:
    """
    Bucket key for a date under a grouping

    - day: the date itself
    - week: the Monday on or before the date
    - month: the first of the month
    - year: January 1st
    - none: the range start (single bucket)

    Raises:
        ValidationError: If group_by is not a known grouping
    """
    if group_by == "none":
        return range_start or date_key
    if group_by == "day":
        return date_key

    day = parse_date_key(date_key)
    if group_by == "week":
        return to_date_key(day - timedelta(days=day.weekday()))
    if group_by == "month":
        return to_date_key(day.replace(day=1))
    if group_by == "year":
        return to_date_key(day.replace(month=1, day=1))

    raise ValidationError(
        f"must be one of: {', '.join(GROUP_BY_OPTIONS)}",
        field="groupBy",
        value=group_by
    )


class TimezoneClock:
    """
    Resolves "today" for a user from their stored timezone.

    The clock source is injectable so tests can pin the instant.
    """

    def __init__(self, store, now: Callable[[], datetime] = now_utc):
        self.store = store
        self._now = now

    def now(self) -> datetime:
        return self._now()

    async def user_timezone(self, user_id: str) -> str:
        settings = await self.store.get_user_settings(user_id)
        return settings.timezone or DEFAULT_TIMEZONE

    async def today(self, user_id: str) -> str:
        """Current date key in the user's timezone"""
        tz_name = await self.user_timezone(user_id)
        return today_in_timezone(tz_name, self._now())
