from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import FrozenSet, Optional, Sequence, Tuple

from ..core.enums import AttendanceMode, Frequency, LocationKind, RosterStatus, SessionType


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class LocationDescriptor:
    """Where a session takes place.

    ``geolocation`` is the configured fix. LINK and LEGACY descriptors may only
    carry a maps ``link`` until coordinates are resolved from it.
    Geofence polygon uses GeoJSON order: ``[[[lng, lat], ...]]``.
    """

    kind: LocationKind = LocationKind.COORDINATES
    geolocation: Optional[GeoPoint] = None
    link: Optional[str] = None
    geofence: Optional[Sequence[Sequence[Sequence[float]]]] = None


@dataclass(frozen=True)
class SessionSchedule:
    frequency: Frequency
    start_date: date
    start_time: str
    end_time: str
    end_date: Optional[date] = None
    weekly_days: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class RosterEntry:
    user_id: int
    mode: AttendanceMode = AttendanceMode.PHYSICAL
    attendance_status: RosterStatus = RosterStatus.PENDING
    is_late: bool = False


@dataclass(frozen=True)
class Session:
    """Domain entity: a scheduled session and its roster."""

    session_id: int
    org_id: int
    name: str
    schedule: SessionSchedule
    session_type: SessionType
    location: LocationDescriptor = field(default_factory=LocationDescriptor)
    city: Optional[str] = None
    state: Optional[str] = None
    radius: Optional[float] = None
    assigned_users: Tuple[RosterEntry, ...] = ()

    def assignment_for(self, user_id: int) -> Optional[RosterEntry]:
        for entry in self.assigned_users:
            if entry.user_id == user_id:
                return entry
        return None

    @property
    def is_recurring(self) -> bool:
        return self.schedule.frequency != Frequency.ONE_TIME

    def to_summary(self) -> dict:
        s = self.schedule
        return {
            "sessionId": self.session_id,
            "name": self.name,
            "frequency": s.frequency.value,
            "sessionType": self.session_type.value,
            "startDate": s.start_date.isoformat(),
            "endDate": s.end_date.isoformat() if s.end_date else None,
            "startTime": s.start_time,
            "endTime": s.end_time,
        }


@dataclass(frozen=True)
class Occurrence:
    """One concrete calendar instance of a (possibly recurring) session."""

    day: date
    start: datetime
    end: datetime
    occurrence_key: str
