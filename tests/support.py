"""Hand-written fakes and builders shared by the test modules."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Optional

import requests

from src.session_attendance.session_attendance.attendance.engine import AdmissionEngine, CheckInRequest
from src.session_attendance.session_attendance.attendance.model import AttendanceRecord, NewAttendance
from src.session_attendance.session_attendance.common.datetime_utils import OrgClock
from src.session_attendance.session_attendance.core.enums import (
    AttendanceMode,
    Frequency,
    LocationKind,
    RosterStatus,
    SessionType,
)
from src.session_attendance.session_attendance.core.exceptions import DuplicateAttendanceError
from src.session_attendance.session_attendance.location.gate import LocationGate
from src.session_attendance.session_attendance.location.mapmyindia import MapmyIndiaConfig, MapmyIndiaVerifier
from src.session_attendance.session_attendance.organizations.model import OrganizationSettings
from src.session_attendance.session_attendance.organizations.service import OrganizationSettingsService
from src.session_attendance.session_attendance.sessions.model import (
    GeoPoint,
    LocationDescriptor,
    RosterEntry,
    Session,
    SessionSchedule,
)
from src.session_attendance.session_attendance.users.model import User

IST = timezone(timedelta(minutes=330))

OFFICE = GeoPoint(latitude=18.5204, longitude=73.8567)
# ~40m square around the office, GeoJSON [lng, lat] order.
OFFICE_POLYGON = [
    [
        [73.8565, 18.5202],
        [73.8569, 18.5202],
        [73.8569, 18.5206],
        [73.8565, 18.5206],
        [73.8565, 18.5202],
    ]
]


# ---------------------------------------------------------------------------
# In-memory repositories
# ---------------------------------------------------------------------------


class InMemoryUsers:
    def __init__(self, *users: User):
        self.users_by_id = {u.user_id: u for u in users}
        self.registrations = 0

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users_by_id.get(user_id)

    def register_device(self, *, user_id: int, device_id: str, user_agent: str) -> bool:
        user = self.users_by_id.get(user_id)
        if user is None or user.registered_device_id:
            return False
        self.users_by_id[user_id] = replace(user, registered_device_id=device_id, registered_user_agent=user_agent)
        self.registrations += 1
        return True


class InMemorySessions:
    def __init__(self, *sessions: Session):
        self.sessions_by_id = {s.session_id: s for s in sessions}
        self.roster_updates: list[tuple[int, int, bool]] = []
        self.fail_roster_update = False

    def get_by_id(self, session_id: int) -> Optional[Session]:
        return self.sessions_by_id.get(session_id)

    def get_many(self, session_ids):
        return {sid: self.sessions_by_id[sid] for sid in session_ids if sid in self.sessions_by_id}

    def mark_roster_present(self, *, session_id: int, user_id: int, is_late: bool) -> bool:
        if self.fail_roster_update:
            raise RuntimeError("roster write failed")
        self.roster_updates.append((session_id, user_id, is_late))
        return True

    def list_missing_geolocation(self):
        return [
            s
            for s in self.sessions_by_id.values()
            if s.session_type != SessionType.REMOTE
            and s.location.kind != LocationKind.COORDINATES
            and s.location.geolocation is None
        ]

    def set_geolocation(self, *, session_id: int, point: GeoPoint) -> bool:
        s = self.sessions_by_id[session_id]
        self.sessions_by_id[session_id] = replace(s, location=replace(s.location, geolocation=point, kind=LocationKind.LINK))
        return True


class InMemoryAttendance:
    def __init__(self):
        self.records: list[AttendanceRecord] = []
        self._id = 0

    def find_for_session(self, *, user_id: int, session_id: int) -> Optional[AttendanceRecord]:
        for r in self.records:
            if r.user_id == user_id and r.session_id == session_id:
                return r
        return None

    def find_in_window(self, *, user_id: int, session_id: int, start_utc: datetime, end_utc: datetime):
        for r in self.records:
            if r.user_id == user_id and r.session_id == session_id and start_utc <= r.check_in_time < end_utc:
                return r
        return None

    def insert_if_absent(self, record: NewAttendance) -> int:
        for r in self.records:
            if (r.user_id, r.session_id, r.occurrence_key) == (record.user_id, record.session_id, record.occurrence_key):
                raise DuplicateAttendanceError("duplicate attendance")
        self._id += 1
        self.records.append(AttendanceRecord(attendance_id=self._id, **vars(record)))
        return self._id

    def delete(self, attendance_id: int) -> None:
        self.records = [r for r in self.records if r.attendance_id != attendance_id]

    def list_for_user(self, user_id: int, *, limit: Optional[int] = None):
        items = [r for r in self.records if r.user_id == user_id]
        items.sort(key=lambda r: r.check_in_time, reverse=True)
        return items if limit is None else items[:limit]

    def list_for_session(self, session_id: int):
        return [r for r in self.records if r.session_id == session_id]


class InMemorySettings:
    def __init__(self, settings: Optional[OrganizationSettings] = None, *, broken: bool = False):
        self.settings = settings
        self.broken = broken

    def get_for_org(self, org_id: int) -> Optional[OrganizationSettings]:
        if self.broken:
            raise ConnectionError("settings store unavailable")
        return self.settings


# ---------------------------------------------------------------------------
# Provider HTTP fake
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, url: str = ""):
        self.status_code = status_code
        self._body = body
        self.url = url

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


def rev_geocode_body(*, city="Pune", state="Maharashtra", confidence: Any = 0.85) -> dict:
    body = {
        "responseCode": 200,
        "results": [
            {
                "houseNumber": "12",
                "street": "FC Road",
                "locality": "Shivajinagar",
                "district": "Pune",
                "city": city,
                "state": state,
                "pincode": "411005",
            }
        ],
    }
    if confidence is not None:
        body["confidenceScore"] = confidence
    return body


def geofence_body(*, inside=True, distance=12.0) -> dict:
    return {"responseCode": 200, "results": [{"isInside": inside, "distance": distance}]}


class FakeHttp:
    """Stands in for requests.Session: routes GETs by endpoint suffix."""

    def __init__(self):
        self.routes: dict[str, Any] = {
            "rev_geocode": FakeResponse(200, rev_geocode_body()),
            "geofence/check": FakeResponse(200, geofence_body()),
        }
        self.calls: list[tuple[str, dict, float]] = []

    def get(self, url: str, params=None, timeout=None):
        self.calls.append((url, dict(params or {}), timeout))
        for endpoint, response in self.routes.items():
            if url.endswith(endpoint):
                if isinstance(response, Exception):
                    raise response
                return response
        raise requests.ConnectionError(f"no route for {url}")

    def endpoints_called(self) -> list[str]:
        # "./v1/<key>/rev_geocode" -> "rev_geocode"
        return [url.split("/v1/", 1)[1].split("/", 1)[1] for url, _, _ in self.calls]


def make_verifier(http: FakeHttp, *, api_key: Optional[str] = "test-key", **overrides) -> MapmyIndiaVerifier:
    config = MapmyIndiaConfig(api_key=api_key, base_url="https://maps.example/advancedmaps/v1", **overrides)
    return MapmyIndiaVerifier(config, http=http)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_session(
    *,
    session_id: int = 10,
    org_id: int = 1,
    session_type: SessionType = SessionType.PHYSICAL,
    frequency: Frequency = Frequency.ONE_TIME,
    start_date: date = date(2026, 3, 2),
    end_date: Optional[date] = None,
    start_time: str = "10:00",
    end_time: str = "11:00",
    weekly_days=frozenset(),
    location: Optional[LocationDescriptor] = None,
    city: Optional[str] = "Pune",
    radius: Optional[float] = 100,
    roster=None,
) -> Session:
    if location is None:
        location = LocationDescriptor(kind=LocationKind.COORDINATES, geolocation=OFFICE)
    if roster is None:
        roster = (RosterEntry(user_id=1, mode=AttendanceMode.PHYSICAL),)
    return Session(
        session_id=session_id,
        org_id=org_id,
        name="Morning lecture",
        schedule=SessionSchedule(
            frequency=frequency,
            start_date=start_date,
            end_date=end_date,
            start_time=start_time,
            end_time=end_time,
            weekly_days=frozenset(weekly_days),
        ),
        session_type=session_type,
        location=location,
        city=city,
        state="Maharashtra",
        radius=radius,
        assigned_users=tuple(roster),
    )


def make_user(**overrides) -> User:
    fields = dict(user_id=1, org_id=1, full_name="Asha Rao")
    fields.update(overrides)
    return User(**fields)


def local(day: date, hhmm: str, seconds: int = 0) -> datetime:
    """A local (IST) wall-clock instant expressed in UTC."""
    h, m = (int(p) for p in hhmm.split(":"))
    return datetime(day.year, day.month, day.day, h, m, seconds, tzinfo=IST).astimezone(timezone.utc)


@dataclass
class World:
    users: InMemoryUsers
    sessions: InMemorySessions
    attendance: InMemoryAttendance
    settings: InMemorySettings
    http: FakeHttp
    now: datetime = field(default_factory=lambda: local(date(2026, 3, 2), "09:00"))
    verifier_overrides: dict = field(default_factory=dict)

    @property
    def clock(self) -> OrgClock:
        return OrgClock(utc_offset_minutes=330, now_fn=lambda: self.now)

    def at(self, day: date, hhmm: str, seconds: int = 0) -> "World":
        self.now = local(day, hhmm, seconds)
        return self

    def engine(self) -> AdmissionEngine:
        return AdmissionEngine(
            users=self.users,
            sessions=self.sessions,
            attendance=self.attendance,
            settings=OrganizationSettingsService(self.settings),
            location_gate=LocationGate(make_verifier(self.http, **self.verifier_overrides)),
            clock=self.clock,
        )

    def admit(self, **overrides):
        fields = dict(
            user_id=1,
            org_id=1,
            session_id=10,
            device_id="device-abc",
            user_agent="Mozilla/5.0 (Android 14)",
            location={"latitude": OFFICE.latitude, "longitude": OFFICE.longitude},
            accuracy=20,
        )
        fields.update(overrides)
        return self.engine().admit(CheckInRequest(**fields))


