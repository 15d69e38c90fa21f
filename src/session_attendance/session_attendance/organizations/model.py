from __future__ import annotations

from dataclasses import dataclass

from ..core.constants import DEFAULT_LATE_ATTENDANCE_LIMIT_MINUTES, DEFAULT_STRICT_ATTENDANCE


@dataclass(frozen=True)
class OrganizationSettings:
    late_attendance_limit_minutes: int = DEFAULT_LATE_ATTENDANCE_LIMIT_MINUTES
    is_strict_attendance: bool = DEFAULT_STRICT_ATTENDANCE


DEFAULT_SETTINGS = OrganizationSettings()
