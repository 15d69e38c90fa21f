from __future__ import annotations

import logging

from .model import DEFAULT_SETTINGS, OrganizationSettings
from .repository import OrganizationSettingsRepository

logger = logging.getLogger(__name__)


class OrganizationSettingsService:
    """Reads lateness settings; never fails a check-in.

    A missing row or a storage error yields the defaults (30 minutes, non-strict):
    these settings only affect lateness classification.
    """

    def __init__(self, settings: OrganizationSettingsRepository):
        self._settings = settings

    def get(self, org_id: int) -> OrganizationSettings:
        try:
            found = self._settings.get_for_org(org_id)
        except Exception:
            logger.warning(
                "Organization settings unavailable for org %s; using defaults "
                "(late_limit=%s, strict=%s)",
                org_id,
                DEFAULT_SETTINGS.late_attendance_limit_minutes,
                DEFAULT_SETTINGS.is_strict_attendance,
                exc_info=True,
            )
            return DEFAULT_SETTINGS

        if found is None:
            logger.debug("No settings row for org %s; using defaults", org_id)
            return DEFAULT_SETTINGS
        return found
