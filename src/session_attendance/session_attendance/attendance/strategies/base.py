from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...organizations.model import OrganizationSettings
from ...sessions.model import Occurrence


@dataclass(frozen=True)
class LatenessDecision:
    is_late: bool = False
    late_by_minutes: Optional[int] = None


class AdmissionWindowStrategy(ABC):
    """Strategy Pattern: encapsulate how we classify the check-in instant."""

    @abstractmethod
    def decide(self, *, now: datetime, occurrence: Occurrence, settings: OrganizationSettings) -> LatenessDecision:
        raise NotImplementedError
