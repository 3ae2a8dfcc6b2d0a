"""Unit tests for Datetime Helpers (daybook/utils/datetime_helpers.py)"""
import pytest
from datetime import datetime, timezone

from daybook.exceptions import ValidationError
from daybook.utils.datetime_helpers import (
    TimezoneClock,
    days_between,
    format_time_in_timezone,
    is_valid_timezone,
    now_utc,
    parse_date_key,
    period_start,
    previous_date_key,
    resolve_timezone,
    today_in_timezone,
)


# ============================================================================
# UTC Time Tests
# ============================================================================

def test_now_utc_is_aware():
    """Test that now_utc returns an aware UTC datetime"""
    result = now_utc()

    assert result.utcoffset().total_seconds() == 0


# ============================================================================
# Timezone Tests
# ============================================================================

def test_today_in_timezone_crosses_date_line():
    """Same instant, different calendar dates"""
    moment = datetime(2024, 1, 5, 23, 30, tzinfo=timezone.utc)

    assert today_in_timezone("UTC", moment) == "2024-01-05"
    assert today_in_timezone("Asia/Tokyo", moment) == "2024-01-06"
    assert today_in_timezone("America/Los_Angeles", moment) == "2024-01-05"


def test_today_in_timezone_west_of_utc():
    moment = datetime(2024, 1, 6, 3, 0, tzinfo=timezone.utc)

    assert today_in_timezone("America/New_York", moment) == "2024-01-05"


def test_naive_now_is_treated_as_utc():
    assert today_in_timezone("Asia/Tokyo", datetime(2024, 1, 5, 20, 0)) == "2024-01-06"


@pytest.mark.parametrize("tz_name", ["", None, "Mars/Olympus_Mons", "not a zone"])
def test_invalid_timezone_fails_closed_to_utc(tz_name):
    """Unknown zones never raise"""
    moment = datetime(2024, 1, 5, 23, 30, tzinfo=timezone.utc)

    assert today_in_timezone(tz_name, moment) == "2024-01-05"
    assert str(resolve_timezone(tz_name)) == "UTC"


def test_is_valid_timezone():
    assert is_valid_timezone("Europe/Berlin") is True
    assert is_valid_timezone("Europe/Atlantis") is False


def test_format_time_in_timezone():
    moment = datetime(2024, 1, 5, 15, 4, 5, tzinfo=timezone.utc)

    assert format_time_in_timezone(moment, "Europe/Berlin") == "16:04:05"


# ============================================================================
# Date Key Tests
# ============================================================================

class TestParseDateKey:
    """Strict YYYY-MM-DD parsing"""

    def test_valid(self):
        assert parse_date_key("2024-02-29").isoformat() == "2024-02-29"

    @pytest.mark.parametrize("value", ["2024-2-29", "2023-02-29", "20240105", "2024-01-05T00:00", "", None, 20240105])
    def test_invalid(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_date_key(value)
        assert exc_info.value.field == "date"

    def test_field_name_is_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_date_key("nope", field="startDate")
        assert exc_info.value.field == "startDate"


def test_previous_date_key_across_year():
    assert previous_date_key("2024-01-01") == "2023-12-31"


def test_days_between():
    assert days_between("2024-01-01", "2024-01-31") == 30
    assert days_between("2024-01-31", "2024-01-01") == -30


# ============================================================================
# Period Bucketing Tests
# ============================================================================

class TestPeriodStart:
    """Bucket keys per grouping"""

    def test_day(self):
        assert period_start("2024-01-10", "day") == "2024-01-10"

    def test_week_starts_monday(self):
        # 2024-01-10 is a Wednesday, 2024-01-14 a Sunday
        assert period_start("2024-01-10", "week") == "2024-01-08"
        assert period_start("2024-01-14", "week") == "2024-01-08"
        assert period_start("2024-01-08", "week") == "2024-01-08"

    def test_week_across_year_boundary(self):
        assert period_start("2024-01-03", "week") == "2024-01-01"
        assert period_start("2023-01-01", "week") == "2022-12-26"

    def test_month(self):
        assert period_start("2024-02-29", "month") == "2024-02-01"

    def test_year(self):
        assert period_start("2024-07-04", "year") == "2024-01-01"

    def test_none_uses_range_start(self):
        assert period_start("2024-07-04", "none", "2024-07-01") == "2024-07-01"

    def test_unknown_grouping(self):
        with pytest.raises(ValidationError) as exc_info:
            period_start("2024-07-04", "fortnight")
        assert exc_info.value.field == "groupBy"


# ============================================================================
# TimezoneClock Tests
# ============================================================================

class TestTimezoneClock:
    """Per-user today"""

    @pytest.mark.asyncio
    async def test_today_uses_stored_timezone(self, store, test_user_id):
        moment = datetime(2024, 1, 5, 23, 30, tzinfo=timezone.utc)
        clock = TimezoneClock(store, now=lambda: moment)

        assert await clock.today(test_user_id) == "2024-01-05"

        await store.update_user_settings(test_user_id, timezone="Asia/Tokyo")
        assert await clock.today(test_user_id) == "2024-01-06"

    @pytest.mark.asyncio
    async def test_invalid_stored_timezone_is_utc(self, store, test_user_id):
        moment = datetime(2024, 1, 5, 23, 30, tzinfo=timezone.utc)
        clock = TimezoneClock(store, now=lambda: moment)
        await store.update_user_settings(test_user_id, timezone="Nowhere/Special")

        assert await clock.today(test_user_id) == "2024-01-05"
