from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from ..common.datetime_utils import OrgClock
from ..core.constants import ONE_TIME_OCCURRENCE_KEY
from ..core.enums import Frequency
from .model import Occurrence, SessionSchedule

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def occurs_on(schedule: SessionSchedule, today: date) -> bool:
    """Does the session have an occurrence on the given local date?"""
    if schedule.frequency == Frequency.ONE_TIME:
        return schedule.start_date == today

    if today < schedule.start_date:
        return False
    if schedule.end_date is not None and today > schedule.end_date:
        return False

    # An empty weekday set on a Weekly session behaves like Daily.
    if schedule.frequency == Frequency.WEEKLY and schedule.weekly_days:
        return weekday_name(today) in schedule.weekly_days

    # Daily and Monthly: being inside the date range is enough.
    return True


def occurrence_key(schedule: SessionSchedule, day: date) -> str:
    if schedule.frequency == Frequency.ONE_TIME:
        return ONE_TIME_OCCURRENCE_KEY
    return day.isoformat()


def resolve_occurrence(schedule: SessionSchedule, today: date, clock: OrgClock) -> Optional[Occurrence]:
    """Concrete start/end instants of today's occurrence, or None."""
    if not occurs_on(schedule, today):
        return None

    start = clock.combine(today, schedule.start_time)
    end = clock.combine(today, schedule.end_time)
    if end <= start:
        # Session runs past local midnight.
        end += timedelta(days=1)

    return Occurrence(day=today, start=start, end=end, occurrence_key=occurrence_key(schedule, today))
