from datetime import date, datetime, timedelta
import calendar
from dateutil.parser import isoparse


def now() -> datetime:
    return datetime.now().replace(microsecond=0)


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO-8601 date or date-time string, returning None on failure.

    Aware values are converted to local time and made naive so every
    comparison in the app works on the same wall clock.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = isoparse(str(value).strip())
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def resolve_now(value: datetime | date | None = None) -> datetime:
    """The reference instant on the same naive local clock as stored values.

    None means the wall clock.
    """
    if value is None:
        return now()
    return parse_timestamp(value)


def parse_date(value) -> date | None:
    """Calendar day of an ISO-8601 string, time of day dropped."""
    parsed = parse_timestamp(value)
    return parsed.date() if parsed else None


def format_timestamp(d: datetime | date) -> str:
    if isinstance(d, datetime):
        return d.isoformat(timespec="seconds")
    return datetime(d.year, d.month, d.day).isoformat(timespec="seconds")


def to_day(value: datetime | date) -> date:
    """Strip the time of day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_day(value: datetime | date) -> datetime:
    return datetime(value.year, value.month, value.day)


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to valid range for the given year/month."""
    max_day = calendar.monthrange(year, month)[1]
    return min(day, max_day)


def add_days(d, n: int):
    return d + timedelta(days=n)


def add_weeks(d, n: int):
    return d + timedelta(weeks=n)


def add_months(d, n: int):
    """Add n months to d, clamping the day to the end of the target month.

    Works on both date and datetime; the time of day is kept.
    """
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = clamp_day_to_month(year, month, d.day)
    return d.replace(year=year, month=month, day=day)


def add_years(d, n: int):
    """Feb 29 lands on Feb 28 in non-leap years."""
    return add_months(d, 12 * n)


def first_day_of_month(d: datetime | date) -> datetime:
    return datetime(d.year, d.month, 1)


def last_day_of_month(d: datetime | date) -> date:
    last = calendar.monthrange(d.year, d.month)[1]
    return date(d.year, d.month, last)


def day_has_passed(day_of_month: int, ref: datetime | date) -> bool:
    """True when ref is already later in its month than day_of_month."""
    return ref.day > day_of_month
