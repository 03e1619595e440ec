import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (all engine dates are naive UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Lenient date parsing for record fields.

    Accepts datetime, date, ISO-8601 strings (date-only or full, with a trailing
    "Z") and returns a naive UTC datetime. Anything unparseable becomes None so
    the field is excluded from analysis instead of failing the record.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_naive_utc(datetime.fromisoformat(text))
        except ValueError:
            logger.warning(f"[time_util] Unparseable date {value!r}, treating as missing")
            return None
    logger.warning(f"[time_util] Unsupported date value {value!r}, treating as missing")
    return None


def days_between(start: datetime, end: datetime) -> int:
    """Calendar days from start to end (negative when end is earlier)."""
    return (end.date() - start.date()).days


def format_date(value: Optional[datetime]) -> str:
    """Format as "Mar 15, 2019"."""
    if value is None:
        return "unknown date"
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def format_duration(days: int) -> str:
    """Human readable duration: "12 days", "3 months, 4 days", "2 years, 1 month"."""
    def plural(n: int, unit: str) -> str:
        return f"{n} {unit}{'' if n == 1 else 's'}"

    if days < 30:
        return plural(days, "day")
    months, remain_days = divmod(days, 30)
    if months < 12:
        if remain_days == 0:
            return plural(months, "month")
        return f"{plural(months, 'month')}, {plural(remain_days, 'day')}"
    years, remain_months = divmod(months, 12)
    if remain_months == 0:
        return plural(years, "year")
    return f"{plural(years, 'year')}, {plural(remain_months, 'month')}"
