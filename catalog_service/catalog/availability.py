"""
Category availability evaluation.

Pure functions of a category and an explicit ``now``; no clock is read here.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable, List, Optional

from catalog_service.domain.entities import AvailabilityPeriod, Category, DayOfWeek

# Offset 7 covers a weekly window on today's weekday that already started.
LOOKAHEAD_DAYS = 7

NO_UPCOMING_AVAILABILITY = "No upcoming availability periods found"


@dataclass(frozen=True)
class AvailabilityResult:
    is_available: bool
    current_period: Optional[AvailabilityPeriod] = None
    next_available_time: Optional[datetime] = None
    reason: Optional[str] = None


def format_clock(value: time) -> str:
    """
    Examples:
        >>> format_clock(time(17, 0))
        '5:00 PM'
    """
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def is_time_in_period(moment: time, period: AvailabilityPeriod) -> bool:
    """Inclusive range check; a period ending before it starts wraps midnight."""
    if period.crosses_midnight:
        return moment >= period.start_time or moment <= period.end_time
    return period.start_time <= moment <= period.end_time


def _matches_day(period: AvailabilityPeriod, day: DayOfWeek) -> bool:
    return period.day_of_week is None or period.day_of_week == day


def find_next_available_time(
    periods: Iterable[AvailabilityPeriod], now: datetime
) -> Optional[datetime]:
    """
    Earliest period start on the first upcoming day that has one.

    Today only counts starts strictly after ``now``.
    """
    periods = list(periods)
    current = now.time().replace(microsecond=0)

    for offset in range(LOOKAHEAD_DAYS + 1):
        day = now.date() + timedelta(days=offset)
        weekday = list(DayOfWeek)[day.weekday()]

        starts = [
            period.start_time
            for period in periods
            if _matches_day(period, weekday) and (offset > 0 or period.start_time > current)
        ]
        if starts:
            return datetime.combine(day, min(starts), tzinfo=now.tzinfo)

    return None


def is_available(category: Category, now: datetime) -> AvailabilityResult:
    """
    Evaluate whether a category can be ordered at ``now``.

    A category without periods is always available.
    """
    if not category.availability_periods:
        return AvailabilityResult(is_available=True)

    today = DayOfWeek.of(now)
    current = now.time().replace(microsecond=0)

    for period in category.availability_periods:
        if not _matches_day(period, today):
            continue
        if is_time_in_period(current, period):
            return AvailabilityResult(is_available=True, current_period=period)

    next_time = find_next_available_time(category.availability_periods, now)
    if next_time is None:
        return AvailabilityResult(is_available=False, reason=NO_UPCOMING_AVAILABILITY)

    when = format_clock(next_time.time())
    if next_time.date() != now.date():
        when = f"{next_time.strftime('%A')} {when}"

    return AvailabilityResult(
        is_available=False,
        next_available_time=next_time,
        reason=f"Available again at {when}",
    )


def availability_text(category: Category, now: datetime) -> str:
    """Short status line for display."""
    result = is_available(category, now)
    if result.is_available:
        if result.current_period is not None:
            return f"Available until {format_clock(result.current_period.end_time)}"
        return "Available now"
    return result.reason or "Currently unavailable"


def filter_available_categories(categories: Iterable[Category], now: datetime) -> List[Category]:
    return [category for category in categories if is_available(category, now).is_available]


class AvailabilityEvaluator:
    """Object form of the availability functions, for injection."""

    def is_available(self, category: Category, now: datetime) -> AvailabilityResult:
        return is_available(category, now)

    def availability_text(self, category: Category, now: datetime) -> str:
        return availability_text(category, now)

    def filter_available(self, categories: Iterable[Category], now: datetime) -> List[Category]:
        return filter_available_categories(categories, now)
