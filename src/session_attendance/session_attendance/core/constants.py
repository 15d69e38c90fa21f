"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Organization settings defaults (used when the settings row is missing/unreadable)
DEFAULT_LATE_ATTENDANCE_LIMIT_MINUTES = 30
DEFAULT_STRICT_ATTENDANCE = False

# Organization locale: IST (UTC+05:30)
DEFAULT_UTC_OFFSET_MINUTES = 330

# Scanning opens this many hours before the session starts
EARLY_WINDOW_HOURS = 2

# Raw GPS accuracy sanity bounds (meters)
MAX_REPORTED_ACCURACY_METERS = 1000

# Location provider thresholds
DEFAULT_MIN_CONFIDENCE_SCORE = 0.6
DEFAULT_MAX_ACCURACY_RADIUS_METERS = 50
DEFAULT_PROVIDER_CONFIDENCE = 0.8
DEFAULT_VERIFY_TIMEOUT_SECONDS = 10
DEFAULT_MAPMYINDIA_API_BASE = "https://apis.mapmyindia.com/advancedmaps/v1"

# Maps link resolution
LINK_MAX_REDIRECTS = 5
LINK_TIMEOUT_SECONDS = 10

# Idempotency key used for one-time sessions
ONE_TIME_OCCURRENCE_KEY = "once"
