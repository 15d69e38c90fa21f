from __future__ import annotations

from datetime import datetime, timedelta

from ...common.datetime_utils import OrgClock, split_hours
from ...core.constants import EARLY_WINDOW_HOURS
from ...core.enums import RejectionCode
from ...core.exceptions import CheckInRejected
from ...organizations.model import OrganizationSettings
from ...sessions.model import Occurrence
from .base import AdmissionWindowStrategy, LatenessDecision


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


class TooEarlyStrategy(AdmissionWindowStrategy):
    """Before the scan window opens: reject with the time left."""

    def __init__(self, early_window: timedelta = timedelta(hours=EARLY_WINDOW_HOURS)):
        self._early_window = early_window

    def decide(self, *, now: datetime, occurrence: Occurrence, settings: OrganizationSettings) -> LatenessDecision:
        window_start = occurrence.start - self._early_window
        hours, minutes = split_hours(window_start - now)

        local_start = occurrence.start.astimezone(now.tzinfo) if now.tzinfo else occurrence.start
        local_window = window_start.astimezone(now.tzinfo) if now.tzinfo else window_start
        start_fmt = OrgClock.format_clock(local_start)
        window_fmt = OrgClock.format_clock(local_window)

        remaining = f"{_plural(hours, 'hour')} and {_plural(minutes, 'minute')}" if hours > 0 else _plural(minutes, "minute")
        raise CheckInRejected(
            RejectionCode.TOO_EARLY,
            f"Attendance not yet open. Class starts at {start_fmt}. "
            f"You can scan starting from {window_fmt} (in {remaining}).",
            session_start_time=start_fmt,
            scan_window_start_time=window_fmt,
            hours_remaining=hours,
            minutes_remaining=minutes,
        )
