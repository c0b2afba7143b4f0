"""Resolve analytics date-range presets into concrete UTC boundaries.

Every instant in the app is a naive datetime in UTC. Ranges are inclusive and
day aligned: ``date_from`` is midnight of the first day and ``date_to`` is the
last microsecond of the last day. Weeks start on Monday.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Optional, Union

import pandas as pd


class DateRangePreset(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this-week"
    LAST_WEEK = "last-week"
    THIS_MONTH = "this-month"
    LAST_MONTH = "last-month"
    THIS_YEAR = "this-year"
    LAST_YEAR = "last-year"
    ALL_TIME = "all-time"


CUSTOM_RANGE = "custom"

PRESET_LABELS = {
    DateRangePreset.TODAY: "Today",
    DateRangePreset.YESTERDAY: "Yesterday",
    DateRangePreset.THIS_WEEK: "This Week",
    DateRangePreset.LAST_WEEK: "Last Week",
    DateRangePreset.THIS_MONTH: "This Month",
    DateRangePreset.LAST_MONTH: "Last Month",
    DateRangePreset.THIS_YEAR: "This Year",
    DateRangePreset.LAST_YEAR: "Last Year",
    DateRangePreset.ALL_TIME: "All Time",
}

YEARLY_PRESETS = (DateRangePreset.THIS_YEAR.value, DateRangePreset.LAST_YEAR.value)

DateInput = Union[str, date, datetime, None]


@dataclass(frozen=True)
class DateRange:
    date_from: Optional[datetime]
    date_to: Optional[datetime]
    value: str
    label: str

    @property
    def is_all_time(self) -> bool:
        return self.date_from is None or self.date_to is None

    @property
    def is_yearly(self) -> bool:
        return self.value in YEARLY_PRESETS


ALL_TIME_RANGE = DateRange(None, None, DateRangePreset.ALL_TIME.value, PRESET_LABELS[DateRangePreset.ALL_TIME])


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc_naive(value: datetime) -> datetime:
    """Normalise an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)


def start_of_next_month(now: datetime) -> datetime:
    """Midnight UTC on the first day of the month after ``now``; monthly reports go out then."""
    year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
    return datetime(year, month, 1)


def _day_span(first: date, last: date, preset: DateRangePreset) -> DateRange:
    return DateRange(start_of_day(first), end_of_day(last), preset.value, PRESET_LABELS[preset])


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def _preset_range(preset: DateRangePreset, today: date) -> DateRange:
    if preset is DateRangePreset.ALL_TIME:
        return ALL_TIME_RANGE
    if preset is DateRangePreset.TODAY:
        return _day_span(today, today, preset)
    if preset is DateRangePreset.YESTERDAY:
        yesterday = today - timedelta(days=1)
        return _day_span(yesterday, yesterday, preset)
    if preset is DateRangePreset.THIS_WEEK:
        monday = today - timedelta(days=today.weekday())
        return _day_span(monday, monday + timedelta(days=6), preset)
    if preset is DateRangePreset.LAST_WEEK:
        monday = today - timedelta(days=today.weekday() + 7)
        return _day_span(monday, monday + timedelta(days=6), preset)
    if preset is DateRangePreset.THIS_MONTH:
        return _day_span(*_month_bounds(today.year, today.month), preset)
    if preset is DateRangePreset.LAST_MONTH:
        year, month = (today.year - 1, 12) if today.month == 1 else (today.year, today.month - 1)
        return _day_span(*_month_bounds(year, month), preset)
    if preset is DateRangePreset.THIS_YEAR:
        return _day_span(date(today.year, 1, 1), date(today.year, 12, 31), preset)
    if preset is DateRangePreset.LAST_YEAR:
        return _day_span(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31), preset)
    raise ValueError(f"Unhandled date range preset: {preset}")


def parse_preset(value: Optional[str]) -> Optional[DateRangePreset]:
    if not value:
        return None
    try:
        return DateRangePreset(value.strip().lower())
    except ValueError:
        return None


def parse_date_input(value: DateInput) -> Optional[datetime]:
    """Parse an ISO date or datetime; anything unparseable becomes ``None``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc_naive(value)
    if isinstance(value, date):
        return start_of_day(value)
    if not str(value).strip():
        return None

    parsed = pd.to_datetime(str(value).strip(), errors="coerce", utc=True)
    if pd.isna(parsed):
        return None
    return parsed.tz_convert(None).to_pydatetime()


def resolve_date_range(
    preset: Optional[str] = None,
    date_from: DateInput = None,
    date_to: DateInput = None,
    now: Optional[datetime] = None,
) -> DateRange:
    """
    Turn a preset name and/or a custom from/to pair into a ``DateRange``.

    A recognised preset wins over custom dates. Custom dates are used only
    when both ends parse and ``from <= to``; otherwise the range falls back
    to all-time, which means "no date filter".
    """
    today = (now or utcnow()).date()

    resolved_preset = parse_preset(preset)
    if resolved_preset is not None:
        return _preset_range(resolved_preset, today)

    start = parse_date_input(date_from)
    end = parse_date_input(date_to)
    if start is None or end is None or start.date() > end.date():
        return ALL_TIME_RANGE

    return DateRange(start_of_day(start.date()), end_of_day(end.date()), CUSTOM_RANGE, "Custom Range")
