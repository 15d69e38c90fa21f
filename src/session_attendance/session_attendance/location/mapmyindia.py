"""MapmyIndia-backed location verifier.

Every failure, local or upstream, raises LocationVerificationError. Nothing
here returns a degraded "unverified" result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from ..common.validators import as_number
from ..core.constants import (
    DEFAULT_MAPMYINDIA_API_BASE,
    DEFAULT_MAX_ACCURACY_RADIUS_METERS,
    DEFAULT_MIN_CONFIDENCE_SCORE,
    DEFAULT_PROVIDER_CONFIDENCE,
    DEFAULT_VERIFY_TIMEOUT_SECONDS,
)
from ..core.enums import RejectionCode
from ..core.exceptions import LocationVerificationError
from ..sessions.model import GeoPoint
from .geo import encode_polygon, haversine
from .verification import GeofenceResult, LocationVerifier, Polygon, ReverseGeocode, VerificationResult, has_polygon

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MapmyIndiaConfig:
    api_key: Optional[str]
    base_url: str = DEFAULT_MAPMYINDIA_API_BASE
    timeout_seconds: float = DEFAULT_VERIFY_TIMEOUT_SECONDS
    min_confidence: float = DEFAULT_MIN_CONFIDENCE_SCORE
    max_accuracy_radius: float = DEFAULT_MAX_ACCURACY_RADIUS_METERS


class MapmyIndiaVerifier(LocationVerifier):
    def __init__(self, config: MapmyIndiaConfig, *, http: Optional[requests.Session] = None):
        self._config = config
        self._http = http or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self._config.api_key)

    # -- local checks -----------------------------------------------------

    def validate_accuracy(self, accuracy_radius: Any) -> float:
        accuracy = as_number(accuracy_radius)
        if accuracy is None:
            raise LocationVerificationError(
                RejectionCode.INVALID_ACCURACY,
                "Invalid GPS accuracy data. Please enable high-accuracy GPS and try again.",
            )

        limit = self._config.max_accuracy_radius
        if accuracy > limit:
            logger.info("REJECTED: GPS accuracy too low: %sm", accuracy)
            raise LocationVerificationError(
                RejectionCode.ACCURACY_TOO_LOW,
                f"GPS accuracy is too low ({round(accuracy)}m). "
                "Please enable high-accuracy GPS and ensure you have a clear view of the sky. "
                f"Maximum allowed accuracy: {limit:g}m.",
                accuracy_radius=accuracy,
                max_allowed=limit,
            )
        return accuracy

    @staticmethod
    def validate_city(geocoded_city: str, expected_city: Optional[str]) -> None:
        if not expected_city:
            return
        if not geocoded_city:
            raise LocationVerificationError(
                RejectionCode.CITY_MISMATCH,
                "Could not verify location city. Please try again.",
            )

        if geocoded_city.strip().lower() != expected_city.strip().lower():
            logger.info("REJECTED: City mismatch: geocoded=%r session=%r", geocoded_city, expected_city)
            raise LocationVerificationError(
                RejectionCode.CITY_MISMATCH,
                f"Location verification failed. You are in {geocoded_city}, "
                f"but the session is in {expected_city}. Please move to the correct location.",
                city=geocoded_city,
                expected_city=expected_city,
            )

    def _require_key(self) -> str:
        if not self._config.api_key:
            logger.error("MapmyIndia API key not configured")
            raise LocationVerificationError(
                RejectionCode.NOT_CONFIGURED,
                "Location verification service is not configured. Please contact administrator.",
            )
        return self._config.api_key

    # -- upstream calls ---------------------------------------------------

    def _get(self, endpoint: str, params: dict, *, what: str) -> dict:
        key = self._require_key()
        url = f"{self._config.base_url}/{key}/{endpoint}"
        logger.debug("%s request: %s params=%s", what, url.replace(key, "***"), params)

        try:
            resp = self._http.get(url, params=params, timeout=self._config.timeout_seconds)
        except requests.Timeout:
            logger.warning("%s timed out after %ss", what, self._config.timeout_seconds)
            raise LocationVerificationError(
                RejectionCode.UPSTREAM_TIMEOUT,
                "Unable to verify location at this time. Attendance not marked. "
                "Please check your connection and try again.",
            )
        except requests.RequestException as e:
            logger.warning("%s failed: %s", what, type(e).__name__)
            raise LocationVerificationError(
                RejectionCode.UPSTREAM_UNAVAILABLE,
                "Unable to verify location at this time. Attendance not marked.",
            )

        if resp.status_code >= 500:
            logger.warning("%s upstream error: HTTP %s", what, resp.status_code)
            raise LocationVerificationError(
                RejectionCode.UPSTREAM_UNAVAILABLE,
                "Location verification service is temporarily unavailable. Attendance not marked.",
                status_code=resp.status_code,
            )
        if resp.status_code >= 400:
            logger.warning("%s rejected by upstream: HTTP %s", what, resp.status_code)
            raise LocationVerificationError(
                RejectionCode.UPSTREAM_UNAVAILABLE,
                "Unable to verify location at this time. Attendance not marked. Please try again.",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error("%s returned a non-object body", what)
            raise LocationVerificationError(
                RejectionCode.MALFORMED_RESPONSE,
                "Location verification returned an unexpected response. Attendance not marked.",
            )

        if data.get("responseCode") != 200:
            logger.error("%s failed: responseCode=%s", what, data.get("responseCode"))
            raise LocationVerificationError(
                RejectionCode.UPSTREAM_UNAVAILABLE,
                "Unable to verify location at this time. Attendance not marked. Please try again.",
                response_code=data.get("responseCode"),
            )

        results = data.get("results")
        if not isinstance(results, list):
            raise LocationVerificationError(
                RejectionCode.MALFORMED_RESPONSE,
                "Location verification returned an unexpected response. Attendance not marked.",
            )
        if not results:
            logger.error("No results from %s", what)
            raise LocationVerificationError(
                RejectionCode.NO_RESULT,
                "Could not verify your location. Please ensure GPS is enabled.",
            )
        if not isinstance(results[0], dict):
            raise LocationVerificationError(
                RejectionCode.MALFORMED_RESPONSE,
                "Location verification returned an unexpected response. Attendance not marked.",
            )
        return data

    def reverse_geocode(self, latitude: float, longitude: float) -> tuple[float, ReverseGeocode]:
        data = self._get("rev_geocode", {"lat": str(latitude), "lng": str(longitude)}, what="Reverse geocode")
        result = data["results"][0]

        raw_confidence = data.get("confidenceScore")
        if raw_confidence is None:
            confidence = DEFAULT_PROVIDER_CONFIDENCE
        else:
            confidence = as_number(raw_confidence)
            if confidence is None:
                raise LocationVerificationError(
                    RejectionCode.MALFORMED_RESPONSE,
                    "Location verification returned an unexpected response. Attendance not marked.",
                )

        if confidence < self._config.min_confidence:
            logger.info("REJECTED: Low confidence score: %s", confidence)
            raise LocationVerificationError(
                RejectionCode.LOW_CONFIDENCE,
                f"Location verification failed. Confidence score too low ({confidence:.2f}). "
                "Please ensure you are at the correct location and GPS is accurate.",
                confidence_score=confidence,
                min_confidence=self._config.min_confidence,
            )

        def pick(*keys: str) -> str:
            for k in keys:
                if result.get(k):
                    return str(result[k])
            return "Unknown"

        address_parts = [
            result.get(k)
            for k in ("houseNumber", "houseName", "street", "locality", "city", "state", "pincode")
        ]
        geocode = ReverseGeocode(
            city=pick("city", "district"),
            state=pick("state"),
            locality=pick("locality", "subLocality"),
            district=pick("district"),
            pincode=pick("pincode"),
            full_address=", ".join(str(p) for p in address_parts if p),
        )
        logger.info("Reverse geocode success: city=%s state=%s confidence=%s", geocode.city, geocode.state, confidence)
        return confidence, geocode

    def check_geofence(self, latitude: float, longitude: float, polygon: Polygon) -> GeofenceResult:
        data = self._get(
            "geofence/check",
            {"lat": str(latitude), "lng": str(longitude), "polygon": encode_polygon(polygon[0])},
            what="Geofence check",
        )
        result = data["results"][0]
        if not isinstance(result.get("isInside"), bool):
            raise LocationVerificationError(
                RejectionCode.MALFORMED_RESPONSE,
                "Location boundary check returned an unexpected response. Attendance not marked.",
            )

        distance = as_number(result.get("distance")) or 0.0
        if not result["isInside"]:
            logger.info("REJECTED: Point outside geofence, distance=%s", distance)
            raise LocationVerificationError(
                RejectionCode.OUTSIDE_GEOFENCE,
                "You are not within the approved location boundary. "
                f"You are {round(distance)}m away from the session location. "
                "Please move to the correct location and try again.",
                distance=round(distance),
            )
        return GeofenceResult(is_inside=True, distance=distance)

    @staticmethod
    def check_radius(latitude: float, longitude: float, fix: GeoPoint, radius: float) -> GeofenceResult:
        distance = haversine(latitude, longitude, fix.latitude, fix.longitude)
        if distance > radius:
            logger.info("REJECTED: %.0fm from session location (radius %sm)", distance, radius)
            raise LocationVerificationError(
                RejectionCode.LOCATION_TOO_FAR,
                f"You are {round(distance)}m away from the session location. "
                f"You must be within {radius:g}m to mark attendance.",
                distance=round(distance),
                required_radius=radius,
            )
        return GeofenceResult(is_inside=True, distance=distance)

    # -- contract ---------------------------------------------------------

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
        logger.info(
            "Starting location verification: lat=%s lng=%s accuracy=%s city=%s state=%s geofence=%s",
            latitude,
            longitude,
            accuracy_radius,
            expected_city,
            expected_state,
            has_polygon(geofence_polygon),
        )

        accuracy = self.validate_accuracy(accuracy_radius)
        self._require_key()

        confidence, geocode = self.reverse_geocode(latitude, longitude)
        self.validate_city(geocode.city, expected_city)

        geofence_result = None
        if has_polygon(geofence_polygon):
            geofence_result = self.check_geofence(latitude, longitude, geofence_polygon)
        elif session_fix is not None and as_number(radius) and radius > 0:
            geofence_result = self.check_radius(latitude, longitude, session_fix, float(radius))

        logger.info(
            "Location verification PASSED: city=%s confidence=%s accuracy=%s boundary=%s",
            geocode.city,
            confidence,
            accuracy,
            geofence_result is not None,
        )
        return VerificationResult(
            is_valid=True,
            confidence_score=confidence,
            accuracy_radius=accuracy,
            reverse_geocode=geocode,
            geofence_result=geofence_result,
        )
