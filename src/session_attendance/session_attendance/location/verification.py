"""Location verification contract.

A verifier either returns a :class:`VerificationResult` with ``is_valid=True``
or raises :class:`LocationVerificationError`. There is no partial success.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional, Protocol, Sequence

from ..common.validators import as_number
from ..core.enums import RejectionCode
from ..core.exceptions import LocationVerificationError
from ..sessions.model import GeoPoint

Polygon = Sequence[Sequence[Sequence[float]]]


@dataclass(frozen=True)
class ReverseGeocode:
    city: str
    state: str
    locality: str
    district: str
    pincode: str
    full_address: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class GeofenceResult:
    is_inside: bool
    distance: float


@dataclass(frozen=True)
class VerificationResult:
    is_valid: bool
    confidence_score: Optional[float]
    accuracy_radius: Optional[float]
    reverse_geocode: Optional[ReverseGeocode]
    geofence_result: Optional[GeofenceResult] = None


class LocationVerifier(Protocol):
    def verify(
        self,
        latitude: float,
        longitude: float,
        accuracy_radius: float,
        *,
        expected_city: Optional[str] = None,
        expected_state: Optional[str] = None,
        geofence_polygon: Optional[Polygon] = None,
        session_fix: Optional[GeoPoint] = None,
        radius: Optional[float] = None,
    ) -> VerificationResult:
        raise NotImplementedError


def has_polygon(polygon: Optional[Polygon]) -> bool:
    return bool(polygon) and len(polygon[0]) >= 3


def assert_complete(result: Optional[VerificationResult]) -> VerificationResult:
    """A success must carry numeric confidence, numeric accuracy and a geocode snapshot."""
    if result is None or not result.is_valid:
        raise LocationVerificationError(
            RejectionCode.INCOMPLETE_VERIFICATION_DATA,
            "Location verification failed. Attendance cannot be marked.",
        )
    if (
        as_number(result.confidence_score) is None
        or as_number(result.accuracy_radius) is None
        or result.reverse_geocode is None
    ):
        raise LocationVerificationError(
            RejectionCode.INCOMPLETE_VERIFICATION_DATA,
            "Location verification data incomplete. Attendance cannot be marked.",
        )
    return result
