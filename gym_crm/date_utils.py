import logging
from datetime import date, datetime, timedelta
from typing import Optional, Union

DateLike = Union[date, datetime, str, None]

# Formats seen in spreadsheet exports besides ISO 8601.
FALLBACK_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d/%m/%y")


def parse_datetime(value: DateLike) -> Optional[datetime]:
    """Parses a timestamp or calendar date leniently.

    Accepts datetime/date objects and ISO 8601 strings (with or without time,
    a trailing 'Z' or an offset), plus dd/mm/YYYY. Returns None for anything
    missing or unparseable instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        logging.debug(f"Ignoring non-string date value {value!r}")
        return None

    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            pass
    # Postgres-style timestamps with odd fractional seconds still carry a usable date.
    try:
        return datetime.fromisoformat(text[:10])
    except ValueError:
        logging.debug(f"Could not parse date '{value}'.")
        return None


def parse_date(value: DateLike) -> Optional[date]:
    """Calendar date of ``value`` (in its own offset), or None."""
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def start_of_day(value: Union[date, datetime]) -> date:
    """Strips the time of day; the result is what every day-difference uses."""
    if isinstance(value, datetime):
        return value.date()
    return value


def days_between(later: date, earlier: date) -> int:
    """Number of calendar days from ``earlier`` to ``later`` (negative if reversed)."""
    return (later - earlier).days


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def month_start(day: date) -> date:
    return day.replace(day=1)


def shift_months(day: date, months: int) -> date:
    """First day of the month ``months`` away from ``day``'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)
