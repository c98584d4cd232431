from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any


@dataclass(frozen=True, slots=True)
class AnalyticsWindow:
    """Inclusive calendar-day range an aggregation is scoped to (UTC)."""

    start_date: date
    end_date: date

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.start_date, time.min, tzinfo=timezone.utc)

    @property
    def end_at(self) -> datetime:
        return datetime.combine(self.end_date, time.max, tzinfo=timezone.utc)

    def dates(self) -> list[date]:
        return [self.start_date + timedelta(days=offset) for offset in range(self.days)]

    def contains(self, value: date | datetime | None) -> bool:
        if value is None:
            return False
        return self.start_date <= to_utc_date(value) <= self.end_date


def trailing_window(days: int, end_date: date) -> AnalyticsWindow:
    return AnalyticsWindow(start_date=end_date - timedelta(days=max(1, days) - 1), end_date=end_date)


def to_utc_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(timezone.utc).date()
    return value


def parse_iso_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return to_utc_date(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    raw = value.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return to_utc_date(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        return None


def resolve_window(
    start: Any,
    end: Any,
    *,
    default_days: int,
    today: date,
    max_days: int | None = None,
) -> AnalyticsWindow:
    """Build the request window, falling back to the trailing default on bad input.

    Missing bounds are filled in (end defaults to today, start to ``default_days``
    back from end). Unparseable or inverted bounds, a start that would fall before
    ``date.min``, and windows longer than ``max_days`` drop the whole request window.
    """

    fallback = trailing_window(default_days, today)

    end_date = parse_iso_date(end) if end not in (None, "") else today
    if end_date is None:
        return fallback

    if start in (None, ""):
        try:
            window = trailing_window(default_days, end_date)
        except OverflowError:
            return fallback
    else:
        start_date = parse_iso_date(start)
        if start_date is None or start_date > end_date:
            return fallback
        window = AnalyticsWindow(start_date=start_date, end_date=end_date)

    if max_days is not None and window.days > max_days:
        return fallback
    return window
