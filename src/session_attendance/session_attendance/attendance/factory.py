from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..core.constants import EARLY_WINDOW_HOURS
from ..organizations.model import OrganizationSettings
from ..sessions.model import Occurrence
from .strategies.base import AdmissionWindowStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy
from .strategies.strict_late_strategy import StrictLateStrategy
from .strategies.too_early_strategy import TooEarlyStrategy


@dataclass
class AdmissionWindowFactory:
    """Factory Pattern: choose the window/lateness strategy for a check-in instant.

    Thresholds use strict inequalities: ``now == window_start`` is open and
    ``now == start`` is on time.
    """

    early_window: timedelta = field(default_factory=lambda: timedelta(hours=EARLY_WINDOW_HOURS))

    def window_start(self, occurrence: Occurrence) -> datetime:
        return occurrence.start - self.early_window

    def is_too_early(self, *, now: datetime, occurrence: Occurrence) -> bool:
        return now < self.window_start(occurrence)

    def for_checkin(self, *, now: datetime, occurrence: Occurrence, settings: OrganizationSettings) -> AdmissionWindowStrategy:
        if self.is_too_early(now=now, occurrence=occurrence):
            return TooEarlyStrategy(self.early_window)

        late_by = now - occurrence.start
        if late_by <= timedelta(0):
            return OnTimeStrategy()
        if late_by <= timedelta(minutes=settings.late_attendance_limit_minutes):
            return LateStrategy()
        if settings.is_strict_attendance:
            return StrictLateStrategy()
        return LateStrategy()
