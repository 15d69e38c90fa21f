from __future__ import annotations

from datetime import datetime

from ...organizations.model import OrganizationSettings
from ...sessions.model import Occurrence
from .base import AdmissionWindowStrategy, LatenessDecision


class OnTimeStrategy(AdmissionWindowStrategy):
    """Inside the scan window, at or before the session start."""

    def decide(self, *, now: datetime, occurrence: Occurrence, settings: OrganizationSettings) -> LatenessDecision:
        return LatenessDecision(is_late=False)
