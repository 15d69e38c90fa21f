from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..common.validators import as_number
from ..core.constants import MAX_REPORTED_ACCURACY_METERS
from ..core.enums import AttendanceMode, RejectionCode, SessionType
from ..core.exceptions import CheckInRejected, LocationVerificationError
from ..sessions.maps_link import session_fix
from ..sessions.model import GeoPoint, RosterEntry, Session
from .verification import LocationVerifier, VerificationResult, assert_complete, has_polygon

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationClearance:
    """Outcome of the location stage for one attempt.

    ``verified`` is True either because the provider verified the fix, or
    because location is not part of the admission contract for this user.
    """

    required: bool
    verified: bool
    result: Optional[VerificationResult] = None
    user_location: Optional[GeoPoint] = None
    accuracy_radius: Optional[float] = None


def is_location_required(session_type: SessionType, mode: AttendanceMode) -> bool:
    if session_type == SessionType.PHYSICAL:
        return True
    if session_type == SessionType.HYBRID:
        return mode == AttendanceMode.PHYSICAL
    return False


def parse_user_location(payload: Any) -> GeoPoint:
    """Validate the raw ``{latitude, longitude}`` payload sent by the client."""
    if not isinstance(payload, Mapping):
        raise CheckInRejected(
            RejectionCode.INVALID_LOCATION_COORDS,
            "Location is required. Please enable GPS and try again.",
        )

    lat = as_number(payload.get("latitude"))
    lng = as_number(payload.get("longitude"))
    if lat is None or lng is None:
        raise CheckInRejected(
            RejectionCode.INVALID_LOCATION_COORDS,
            "Invalid location coordinates. Please enable GPS and try again.",
        )

    if lat == 0 and lng == 0:
        raise CheckInRejected(
            RejectionCode.INVALID_LOCATION_ZERO,
            "Invalid location detected. Please ensure GPS is enabled and try again.",
        )
    return GeoPoint(latitude=lat, longitude=lng)


def parse_accuracy(value: Any, *, max_allowed: float = MAX_REPORTED_ACCURACY_METERS) -> float:
    accuracy = as_number(value)
    if accuracy is None:
        raise CheckInRejected(
            RejectionCode.MISSING_ACCURACY,
            "GPS accuracy is required. Please enable high-accuracy GPS and try again.",
        )
    if accuracy <= 0 or accuracy > max_allowed:
        raise CheckInRejected(
            RejectionCode.INVALID_ACCURACY,
            "Invalid GPS accuracy data. Please enable high-accuracy GPS and try again.",
            accuracy_radius=accuracy,
            max_allowed=max_allowed,
        )
    return accuracy


class LocationGate:
    """Hard gate on location proof. No fallback path exists when required."""

    def __init__(self, verifier: LocationVerifier, *, max_reported_accuracy: float = MAX_REPORTED_ACCURACY_METERS):
        self._verifier = verifier
        self._max_reported_accuracy = float(max_reported_accuracy)

    def clear(
        self,
        *,
        session: Session,
        assignment: RosterEntry,
        user_id: int,
        location: Any,
        accuracy: Any,
    ) -> LocationClearance:
        required = is_location_required(session.session_type, assignment.mode)
        log = {
            "user_id": user_id,
            "session_id": session.session_id,
            "requires_location": required,
            "session_city": session.city,
            "session_state": session.state,
            "has_geofence": has_polygon(session.location.geofence),
        }

        if not required:
            log.update(decision="ALLOW", reason="LOCATION_NOT_REQUIRED")
            logger.info("Location verification skipped: %s", log)
            return LocationClearance(
                required=False,
                verified=True,
                user_location=self._optional_location(location),
                accuracy_radius=as_number(accuracy),
            )

        try:
            point = parse_user_location(location)
            accuracy_radius = parse_accuracy(accuracy, max_allowed=self._max_reported_accuracy)
            log.update(latitude=point.latitude, longitude=point.longitude, accuracy_radius=accuracy_radius)

            fix = session_fix(session.location)
            if fix is None:
                raise CheckInRejected(
                    RejectionCode.SESSION_LOCATION_NOT_CONFIGURED,
                    "Session location is not configured. Please contact your administrator.",
                    location_type=session.location.kind.value,
                )

            result = self._verify(session, point, accuracy_radius, fix)
        except CheckInRejected as e:
            log.update(decision="REJECT", reason=e.rejection.code.value)
            logger.info("Location verification rejected: %s", log)
            raise

        log.update(
            decision="ALLOW",
            confidence_score=result.confidence_score,
            city=result.reverse_geocode.city,
            state=result.reverse_geocode.state,
            geofence=result.geofence_result,
        )
        logger.info("Location verification passed: %s", log)
        return LocationClearance(
            required=True,
            verified=True,
            result=result,
            user_location=point,
            accuracy_radius=accuracy_radius,
        )

    def _verify(self, session: Session, point: GeoPoint, accuracy_radius: float, fix: GeoPoint) -> VerificationResult:
        try:
            result = self._verifier.verify(
                point.latitude,
                point.longitude,
                accuracy_radius,
                expected_city=session.city,
                expected_state=session.state,
                geofence_polygon=session.location.geofence,
                session_fix=fix,
                radius=session.radius,
            )
            return assert_complete(result)
        except LocationVerificationError as e:
            raise CheckInRejected(e.reason, e.message, **e.details)
        except Exception:
            # Anything the provider client did not classify is still a hard rejection.
            logger.exception("Location verifier raised an unexpected error for session %s", session.session_id)
            raise CheckInRejected(
                RejectionCode.VERIFICATION_FAILED,
                "Unable to verify location at this time. Attendance not marked.",
            )

    @staticmethod
    def _optional_location(payload: Any) -> Optional[GeoPoint]:
        try:
            return parse_user_location(payload)
        except CheckInRejected:
            return None
