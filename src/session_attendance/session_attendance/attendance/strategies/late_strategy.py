from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import split_minutes
from ...organizations.model import OrganizationSettings
from ...sessions.model import Occurrence
from .base import AdmissionWindowStrategy, LatenessDecision


class LateStrategy(AdmissionWindowStrategy):
    """Accepted late check-in (within the limit, or past it in non-strict mode)."""

    def decide(self, *, now: datetime, occurrence: Occurrence, settings: OrganizationSettings) -> LatenessDecision:
        minutes, _ = split_minutes(now - occurrence.start)
        return LatenessDecision(is_late=True, late_by_minutes=minutes)
