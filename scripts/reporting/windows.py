"""
Report windows.

The daily window is a fixed 24 hour lookback; the monthly window follows
calendar boundaries in the report's reference timezone.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Optional

from dateutil import tz
from dateutil.relativedelta import relativedelta


@dataclass(frozen=True)
class ReportWindow:
    """Inclusive UTC time range with a human label for the period."""
    start: datetime
    end: datetime
    period_label: str


def resolve_timezone(name: str) -> tzinfo:
    """Look up an IANA timezone name."""
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown timezone: {name}")
    return zone


def last_24_hours(now: Optional[datetime] = None) -> ReportWindow:
    """Window covering the 24 hours up to now."""
    end = _utc(now or datetime.now(timezone.utc))
    return ReportWindow(start=end - timedelta(days=1), end=end, period_label="day")


def previous_calendar_month(now: Optional[datetime] = None, zone: Optional[tzinfo] = None) -> ReportWindow:
    """
    Window covering the whole previous calendar month.

    Args:
        now: Reference instant (defaults to the current time)
        zone: Timezone whose calendar defines the month (defaults to UTC)

    Returns:
        ReportWindow from the first to the last instant of the previous month
    """
    zone = zone or timezone.utc
    local_now = _utc(now or datetime.now(timezone.utc)).astimezone(zone)

    this_month = local_now.date().replace(day=1)
    first_day = this_month - relativedelta(months=1)
    last_day = this_month - relativedelta(days=1)

    start = datetime.combine(first_day, time(0, 0, 0), tzinfo=zone)
    end = datetime.combine(last_day, time(23, 59, 59, 999999), tzinfo=zone)

    return ReportWindow(start=_utc(start), end=_utc(end), period_label="month")


def custom_window(start: datetime, end: datetime, period_label: str = "") -> ReportWindow:
    """Window between two explicit instants."""
    start, end = _utc(start), _utc(end)
    if end < start:
        raise ValueError(f"Window end {end.isoformat()} is before start {start.isoformat()}")
    return ReportWindow(start=start, end=end, period_label=period_label)


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
