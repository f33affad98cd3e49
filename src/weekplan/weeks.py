"""Week boundaries: canonical Monday normalization and calendar display helpers.

A week is identified by its ISO (year-for-week, week-of-year) pair, never by
counting days from an epoch, so weeks that straddle a year boundary or a
daylight-saving transition still resolve to exactly one Monday.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from weekplan.models import DayOfWeek


def get_timezone(name: str | None) -> tzinfo | None:
    """Resolve a timezone name from config; None or '' means naive/local."""
    if not name:
        return None
    return ZoneInfo(name)


def to_local_date(value: date | datetime, tz: tzinfo | None = None) -> date:
    """Truncate a date or datetime to a calendar date in the reference timezone.

    Naive datetimes are taken as already being in the reference timezone.
    """
    if isinstance(value, datetime):
        if tz is not None and value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def normalize_to_week_start(value: date | datetime, tz: tzinfo | None = None) -> date:
    """Return the Monday that begins the ISO week containing value."""
    local = to_local_date(value, tz)
    iso_year, iso_week, _ = local.isocalendar()
    return date.fromisocalendar(iso_year, iso_week, 1)


def week_end(start: date) -> date:
    return normalize_to_week_start(start) + timedelta(days=6)


def date_for_day(start: date, day: DayOfWeek) -> date:
    return normalize_to_week_start(start) + timedelta(days=day.value - 1)


def week_dates(start: date) -> list[tuple[DayOfWeek, date]]:
    return [(day, date_for_day(start, day)) for day in DayOfWeek]


def today_in(tz: tzinfo | None = None, now: datetime | None = None) -> date:
    if now is None:
        now = datetime.now(tz)
    return to_local_date(now, tz)


def day_of(value: date | datetime, tz: tzinfo | None = None) -> DayOfWeek:
    return DayOfWeek.from_date(to_local_date(value, tz))


def is_today(day: DayOfWeek, now: date | datetime, tz: tzinfo | None = None) -> bool:
    # Both clients go through DayOfWeek.from_date so they agree on "today".
    return day_of(now, tz) == day


def is_current_week(start: date, now: date | datetime, tz: tzinfo | None = None) -> bool:
    return normalize_to_week_start(start) == normalize_to_week_start(now, tz)


def week_range_display(start: date) -> str:
    """Format a week as e.g. 'Jan 20 - 26, 2025' or 'Dec 30 - Jan 5, 2025'."""
    start = normalize_to_week_start(start)
    end = week_end(start)
    head = f"{start:%b} {start.day}"
    if end.month == start.month:
        return f"{head} - {end.day}, {end.year}"
    return f"{head} - {end:%b} {end.day}, {end.year}"


def short_week_display(start: date) -> str:
    start = normalize_to_week_start(start)
    return f"Week of {start:%b} {start.day}"


def parse_date(raw: str) -> date:
    """Parse a YYYY-MM-DD string."""
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        raise ValueError(f"Invalid date '{raw}'. Expected YYYY-MM-DD")
