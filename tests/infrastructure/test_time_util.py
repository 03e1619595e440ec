from datetime import date, datetime, timezone

from aerotrace.infrastructure.utils.time_util import (
    days_between,
    format_date,
    format_duration,
    parse_datetime,
)


def test_parse_datetime_variants():
    assert parse_datetime("2019-03-15") == datetime(2019, 3, 15)
    assert parse_datetime(date(2019, 3, 15)) == datetime(2019, 3, 15)
    assert parse_datetime(datetime(2019, 3, 15, 12, tzinfo=timezone.utc)) == datetime(2019, 3, 15, 12)
    assert parse_datetime("") is None
    assert parse_datetime(None) is None
    assert parse_datetime("15th of March") is None
    assert parse_datetime(42) is None


def test_days_between_uses_calendar_days():
    assert days_between(datetime(2019, 1, 1, 23), datetime(2019, 1, 2, 1)) == 1
    assert days_between(datetime(2019, 1, 1), datetime(2020, 3, 1)) == 425
    assert days_between(datetime(2020, 3, 1), datetime(2019, 1, 1)) == -425


def test_format_date():
    assert format_date(datetime(2019, 3, 5)) == "Mar 5, 2019"
    assert format_date(None) == "unknown date"


def test_format_duration():
    assert format_duration(1) == "1 day"
    assert format_duration(12) == "12 days"
    assert format_duration(30) == "1 month"
    assert format_duration(95) == "3 months, 5 days"
    assert format_duration(360) == "1 year"
    assert format_duration(424) == "1 year, 2 months"
