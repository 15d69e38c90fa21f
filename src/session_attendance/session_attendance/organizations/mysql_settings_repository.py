from __future__ import annotations

from typing import Optional

from ..core.constants import DEFAULT_LATE_ATTENDANCE_LIMIT_MINUTES
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import OrganizationSettings
from .repository import OrganizationSettingsRepository


class MySQLOrganizationSettingsRepository(OrganizationSettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_org(self, org_id: int) -> Optional[OrganizationSettings]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT late_attendance_limit, is_strict_attendance
                FROM organization_settings
                WHERE org_id=%s
                """,
                (int(org_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            limit = r.get("late_attendance_limit")
            return OrganizationSettings(
                late_attendance_limit_minutes=int(limit) if limit is not None else DEFAULT_LATE_ATTENDANCE_LIMIT_MINUTES,
                is_strict_attendance=bool(r.get("is_strict_attendance")),
            )
