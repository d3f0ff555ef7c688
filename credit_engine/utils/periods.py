"""Scoring period helpers.

Periods are ISO year-weeks identified as ``YYYY-Www`` (e.g. ``2025-W07``).
Zero-padded ids sort lexically in chronological order.
"""

import re
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Tuple

PERIOD_PATTERN = re.compile(r"^(\d{4})-W(\d{2})$")


class PeriodError(ValueError):
    """Raised for malformed period ids."""


def format_period_id(year: int, week: int) -> str:
    return f"{year}-W{week:02d}"


def parse_period_id(period_id: str) -> Tuple[int, int]:
    """Split ``2025-W07`` into ``(2025, 7)``.

    Raises:
        PeriodError: if the id is malformed or names a week the ISO year lacks
    """
    match = PERIOD_PATTERN.match(period_id.strip()) if period_id else None
    if not match:
        raise PeriodError(f"Invalid period id: {period_id!r}. Expected format: YYYY-Www (e.g. 2025-W07)")

    year, week = int(match.group(1)), int(match.group(2))
    try:
        date.fromisocalendar(year, week, 1)
    except ValueError:
        raise PeriodError(f"Week {week} does not exist in ISO year {year}")
    return year, week


def current_period_id(today: Optional[date] = None) -> str:
    iso = (today or date.today()).isocalendar()
    return format_period_id(iso[0], iso[1])


def period_for_date(day: date) -> str:
    return current_period_id(day)


def week_bounds(period_id: str) -> Tuple[datetime, datetime]:
    """Monday 00:00:00 through Sunday 23:59:59 of the period's week."""
    year, week = parse_period_id(period_id)
    monday = date.fromisocalendar(year, week, 1)
    start = datetime(monday.year, monday.month, monday.day)
    end = start + timedelta(days=6, hours=23, minutes=59, seconds=59)
    return start, end


def get_quarter_dates(year: int, quarter: int) -> Tuple[date, date]:
    """First and last day of a calendar quarter."""
    if quarter < 1 or quarter > 4:
        raise ValueError("Quarter must be between 1 and 4")

    start = date(year, 3 * quarter - 2, 1)
    if quarter == 4:
        end = date(year, 12, 31)
    else:
        end = date(year, 3 * quarter + 1, 1) - timedelta(days=1)
    return start, end


def quarter_of_period(period_id: str) -> Tuple[int, int]:
    """Calendar ``(year, quarter)`` containing the week's Thursday.

    Thursday decides which year an ISO week belongs to, so it also decides
    the quarter.
    """
    year, week = parse_period_id(period_id)
    thursday = date.fromisocalendar(year, week, 4)
    return thursday.year, (thursday.month - 1) // 3 + 1


def _entry_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def weekly_hours(time_entries: Iterable[Mapping[str, Any]], period_id: str) -> float:
    """Total logged hours falling inside the period's week, to one decimal.

    Entries are ``{"date": ..., "hours": ...}`` mappings as exported by the
    time tracker; entries with an unreadable date are ignored.
    """
    start, end = week_bounds(period_id)
    total = 0.0
    for entry in time_entries:
        day = _entry_date(entry.get("date"))
        if day is None or not start.date() <= day <= end.date():
            continue
        total += float(entry.get("hours") or 0)
    return round(total, 1)
