from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import split_minutes
from ...core.enums import RejectionCode
from ...core.exceptions import CheckInRejected
from ...organizations.model import OrganizationSettings
from ...sessions.model import Occurrence
from .base import AdmissionWindowStrategy, LatenessDecision


class StrictLateStrategy(AdmissionWindowStrategy):
    """Past the late limit with strict attendance on: reject."""

    def decide(self, *, now: datetime, occurrence: Occurrence, settings: OrganizationSettings) -> LatenessDecision:
        minutes, seconds = split_minutes(now - occurrence.start)
        raise CheckInRejected(
            RejectionCode.LATE_STRICT_MODE,
            "Attendance window closed. Strict Mode is active. "
            f"You are late for the session by {minutes} minutes and {seconds} seconds.",
            minutes_late=minutes,
            seconds_late=seconds,
            late_limit_minutes=settings.late_attendance_limit_minutes,
        )
