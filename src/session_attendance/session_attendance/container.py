from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests

from .attendance.engine import AdmissionEngine
from .attendance.factory import AdmissionWindowFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import OrgClock
from .core.constants import (
    DEFAULT_MAPMYINDIA_API_BASE,
    DEFAULT_MAX_ACCURACY_RADIUS_METERS,
    DEFAULT_MIN_CONFIDENCE_SCORE,
    DEFAULT_UTC_OFFSET_MINUTES,
    DEFAULT_VERIFY_TIMEOUT_SECONDS,
    MAX_REPORTED_ACCURACY_METERS,
)
from .database.connection import DBConfig, DatabaseConnection
from .location.gate import LocationGate
from .location.mapmyindia import MapmyIndiaConfig, MapmyIndiaVerifier
from .organizations.mysql_settings_repository import MySQLOrganizationSettingsRepository
from .organizations.service import OrganizationSettingsService
from .sessions.mysql_session_repository import MySQLSessionRepository
from .users.mysql_user_repository import MySQLUserRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    clock: OrgClock

    users_repo: MySQLUserRepository
    sessions_repo: MySQLSessionRepository
    attendance_repo: MySQLAttendanceRepository
    settings_repo: MySQLOrganizationSettingsRepository

    settings_service: OrganizationSettingsService
    verifier: MapmyIndiaVerifier
    admission_engine: AdmissionEngine
    attendance_service: AttendanceService


def mapmyindia_config_from(settings: dict) -> MapmyIndiaConfig:
    return MapmyIndiaConfig(
        api_key=settings.get("MAPMYINDIA_API_KEY") or None,
        base_url=str(settings.get("MAPMYINDIA_API_BASE") or DEFAULT_MAPMYINDIA_API_BASE).rstrip("/"),
        timeout_seconds=float(settings.get("LOCATION_VERIFY_TIMEOUT_SECONDS", DEFAULT_VERIFY_TIMEOUT_SECONDS)),
        min_confidence=float(settings.get("LOCATION_MIN_CONFIDENCE", DEFAULT_MIN_CONFIDENCE_SCORE)),
        max_accuracy_radius=float(settings.get("LOCATION_MAX_ACCURACY_METERS", DEFAULT_MAX_ACCURACY_RADIUS_METERS)),
    )


def build_container(*, db_config: dict, settings: Optional[dict] = None, http: Optional[requests.Session] = None) -> Container:
    settings = settings or {}
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    clock = OrgClock(utc_offset_minutes=int(settings.get("ORG_UTC_OFFSET_MINUTES", DEFAULT_UTC_OFFSET_MINUTES)))

    users_repo = MySQLUserRepository(conn)
    sessions_repo = MySQLSessionRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    settings_repo = MySQLOrganizationSettingsRepository(conn)

    settings_service = OrganizationSettingsService(settings_repo)
    verifier = MapmyIndiaVerifier(mapmyindia_config_from(settings), http=http)
    admission_engine = AdmissionEngine(
        users=users_repo,
        sessions=sessions_repo,
        attendance=attendance_repo,
        settings=settings_service,
        location_gate=LocationGate(verifier, max_reported_accuracy=MAX_REPORTED_ACCURACY_METERS),
        clock=clock,
        window_factory=AdmissionWindowFactory(),
    )
    attendance_service = AttendanceService(admission_engine, attendance_repo, sessions_repo, users_repo)

    return Container(
        conn=conn,
        clock=clock,
        users_repo=users_repo,
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        settings_repo=settings_repo,
        settings_service=settings_service,
        verifier=verifier,
        admission_engine=admission_engine,
        attendance_service=attendance_service,
    )
