from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used by the read endpoints."""

    SUPER_ADMIN = "SuperAdmin"
    MANAGER = "Manager"
    END_USER = "EndUser"
    PLATFORM_OWNER = "PLATFORM_OWNER"


class Frequency(str, Enum):
    ONE_TIME = "OneTime"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class SessionType(str, Enum):
    PHYSICAL = "PHYSICAL"
    REMOTE = "REMOTE"
    HYBRID = "HYBRID"


class AttendanceMode(str, Enum):
    """Per-user assignment mode inside a session roster."""

    PHYSICAL = "PHYSICAL"
    REMOTE = "REMOTE"


class LocationKind(str, Enum):
    COORDINATES = "COORDS"
    LINK = "LINK"
    LEGACY = "LEGACY"


class RosterStatus(str, Enum):
    PENDING = "Pending"
    PRESENT = "Present"
    ABSENT = "Absent"
    ON_LEAVE = "On Leave"


class AdmissionState(str, Enum):
    """States of a single check-in attempt, in pipeline order."""

    RECEIVED = "Received"
    FIELD_VALIDATED = "FieldValidated"
    SCHEDULE_CONFIRMED = "ScheduleConfirmed"
    NOT_DUPLICATE = "NotDuplicate"
    WINDOW_OPEN = "WindowOpen"
    LATE_CLASSIFIED = "LateClassified"
    LOCATION_CLEARED = "LocationCleared"
    DEVICE_BOUND = "DeviceBound"
    COMMITTED = "Committed"
    REJECTED = "Rejected"


class RejectionCode(str, Enum):
    """Stable machine-readable reasons returned to the caller."""

    # input validation
    MISSING_DEVICE_ID = "MISSING_DEVICE_ID"
    MISSING_USER_AGENT = "MISSING_USER_AGENT"
    INVALID_SESSION_ID = "INVALID_SESSION_ID"
    INVALID_LOCATION_COORDS = "INVALID_LOCATION_COORDS"
    INVALID_LOCATION_ZERO = "INVALID_LOCATION_ZERO"
    MISSING_ACCURACY = "MISSING_ACCURACY"
    INVALID_ACCURACY = "INVALID_ACCURACY"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"

    # scheduling
    NOT_SCHEDULED_TODAY = "NOT_SCHEDULED_TODAY"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    TOO_EARLY = "TOO_EARLY"
    LATE_STRICT_MODE = "LATE_STRICT_MODE"

    # location
    NOT_ASSIGNED = "NOT_ASSIGNED"
    SESSION_LOCATION_NOT_CONFIGURED = "SESSION_LOCATION_NOT_CONFIGURED"
    INCOMPLETE_VERIFICATION_DATA = "INCOMPLETE_VERIFICATION_DATA"
    NOT_CONFIGURED = "NOT_CONFIGURED"
    ACCURACY_TOO_LOW = "ACCURACY_TOO_LOW"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    CITY_MISMATCH = "CITY_MISMATCH"
    OUTSIDE_GEOFENCE = "OUTSIDE_GEOFENCE"
    LOCATION_TOO_FAR = "LOCATION_TOO_FAR"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    NO_RESULT = "NO_RESULT"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"

    # device binding
    DEVICE_MISMATCH = "DEVICE_MISMATCH"
    DEVICE_CLONING_SUSPECTED = "DEVICE_CLONING_SUSPECTED"

    INTERNAL_ERROR = "INTERNAL_ERROR"
