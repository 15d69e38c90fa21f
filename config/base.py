"""Settings shared by every environment. Environment modules override these."""

import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "session_attendance"),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Organization civil time: fixed offset from UTC (IST = +5:30).
ORG_UTC_OFFSET_MINUTES = int(os.getenv("ORG_UTC_OFFSET_MINUTES", "330"))

# Location verification provider
MAPMYINDIA_API_KEY = os.getenv("MAPMYINDIA_API_KEY", "")
MAPMYINDIA_API_BASE = os.getenv("MAPMYINDIA_API_BASE", "https://apis.mapmyindia.com/advancedmaps/v1")
LOCATION_VERIFY_TIMEOUT_SECONDS = float(os.getenv("LOCATION_VERIFY_TIMEOUT_SECONDS", "10"))
LOCATION_MIN_CONFIDENCE = float(os.getenv("LOCATION_MIN_CONFIDENCE", "0.6"))
LOCATION_MAX_ACCURACY_METERS = float(os.getenv("LOCATION_MAX_ACCURACY_METERS", "50"))
