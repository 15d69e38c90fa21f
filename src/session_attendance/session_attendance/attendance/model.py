from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..location.verification import ReverseGeocode
from ..sessions.model import GeoPoint


@dataclass(frozen=True)
class VerificationSnapshot:
    """Audit copy of the provider result stored with the record."""

    confidence_score: float
    accuracy_radius: float
    reverse_geocode: ReverseGeocode


@dataclass(frozen=True)
class NewAttendance:
    """Everything the commit writes; ``occurrence_key`` is the idempotency key."""

    user_id: int
    session_id: int
    occurrence_key: str
    check_in_time: datetime
    location_verified: bool
    is_late: bool
    device_id: str
    late_by_minutes: Optional[int] = None
    user_location: Optional[GeoPoint] = None
    verification: Optional[VerificationSnapshot] = None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: an accepted check-in. Immutable once created."""

    attendance_id: int
    user_id: int
    session_id: int
    occurrence_key: str
    check_in_time: datetime
    location_verified: bool
    is_late: bool
    device_id: str
    late_by_minutes: Optional[int] = None
    user_location: Optional[GeoPoint] = None
    verification: Optional[VerificationSnapshot] = None

    def to_dict(self) -> dict:
        out = {
            "attendanceId": self.attendance_id,
            "userId": self.user_id,
            "sessionId": self.session_id,
            "checkInTime": self.check_in_time.isoformat(),
            "locationVerified": self.location_verified,
            "isLate": self.is_late,
            "lateByMinutes": self.late_by_minutes,
            "deviceId": self.device_id,
            "userLocation": None,
        }
        if self.user_location:
            out["userLocation"] = {
                "latitude": self.user_location.latitude,
                "longitude": self.user_location.longitude,
            }
        if self.verification:
            out["confidenceScore"] = self.verification.confidence_score
            out["accuracyRadius"] = self.verification.accuracy_radius
            out["reverseGeocodeSnapshot"] = self.verification.reverse_geocode.to_dict()
        return out
