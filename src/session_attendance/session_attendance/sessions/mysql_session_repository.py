from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from ..core.enums import AttendanceMode, Frequency, LocationKind, RosterStatus, SessionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, load_json, mysql_time_to_hhmm
from .model import GeoPoint, LocationDescriptor, RosterEntry, Session, SessionSchedule
from .repository import SessionRepository

_SESSION_COLUMNS = """
    session_id, org_id, name, frequency, start_date, end_date, start_time, end_time,
    weekly_days, session_type, location_type, latitude, longitude, location_link,
    geofence, city, state, radius
"""


def _parse_weekly_days(value: Optional[str]) -> frozenset:
    if not value:
        return frozenset()
    return frozenset(d.strip() for d in value.split(",") if d.strip())


def _row_to_session(r: dict, roster: Sequence[RosterEntry]) -> Session:
    geolocation = None
    if r.get("latitude") is not None and r.get("longitude") is not None:
        geolocation = GeoPoint(latitude=float(r["latitude"]), longitude=float(r["longitude"]))

    return Session(
        session_id=int(r["session_id"]),
        org_id=int(r["org_id"]),
        name=r["name"],
        schedule=SessionSchedule(
            frequency=Frequency(r["frequency"]),
            start_date=r["start_date"],
            end_date=r.get("end_date"),
            start_time=mysql_time_to_hhmm(r["start_time"]),
            end_time=mysql_time_to_hhmm(r["end_time"]),
            weekly_days=_parse_weekly_days(r.get("weekly_days")),
        ),
        session_type=SessionType(r["session_type"]),
        location=LocationDescriptor(
            kind=LocationKind(r.get("location_type") or LocationKind.COORDINATES.value),
            geolocation=geolocation,
            link=r.get("location_link"),
            geofence=load_json(r.get("geofence")),
        ),
        city=r.get("city"),
        state=r.get("state"),
        radius=float(r["radius"]) if r.get("radius") is not None else None,
        assigned_users=tuple(roster),
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_rosters(self, cur, session_ids: Sequence[int]) -> Dict[int, List[RosterEntry]]:
        out: Dict[int, List[RosterEntry]] = {sid: [] for sid in session_ids}
        if not session_ids:
            return out

        placeholders = ",".join(["%s"] * len(session_ids))
        cur.execute(
            f"""
            SELECT session_id, user_id, mode, attendance_status, is_late
            FROM session_assignments
            WHERE session_id IN ({placeholders})
            ORDER BY session_id, position, user_id
            """,
            tuple(int(s) for s in session_ids),
        )
        for r in fetchall(cur):
            out[int(r["session_id"])].append(
                RosterEntry(
                    user_id=int(r["user_id"]),
                    mode=AttendanceMode(r["mode"]),
                    attendance_status=RosterStatus(r["attendance_status"]),
                    is_late=bool(r["is_late"]),
                )
            )
        return out

    def get_by_id(self, session_id: int) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE session_id=%s", (int(session_id),))
            r = fetchone(cur)
            if not r:
                return None
            rosters = self._load_rosters(cur, [int(r["session_id"])])
            return _row_to_session(r, rosters[int(r["session_id"])])

    def get_many(self, session_ids: Iterable[int]) -> Dict[int, Session]:
        ids = sorted({int(s) for s in session_ids})
        if not ids:
            return {}
        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE session_id IN ({placeholders})", tuple(ids))
            rows = fetchall(cur)
            rosters = self._load_rosters(cur, [int(r["session_id"]) for r in rows])
            return {int(r["session_id"]): _row_to_session(r, rosters[int(r["session_id"])]) for r in rows}

    def mark_roster_present(self, *, session_id: int, user_id: int, is_late: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # Late flag is only ever raised here, never cleared.
            cur.execute(
                """
                UPDATE session_assignments
                SET attendance_status=%s, is_late = (is_late OR %s)
                WHERE session_id=%s AND user_id=%s
                """,
                (RosterStatus.PRESENT.value, 1 if is_late else 0, int(session_id), int(user_id)),
            )
            return cur.rowcount > 0

    def list_missing_geolocation(self) -> Sequence[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM sessions
                WHERE session_type IN (%s, %s)
                  AND location_type IN (%s, %s)
                  AND (latitude IS NULL OR longitude IS NULL)
                  AND location_link IS NOT NULL AND location_link <> ''
                ORDER BY session_id
                """,
                (
                    SessionType.PHYSICAL.value,
                    SessionType.HYBRID.value,
                    LocationKind.LINK.value,
                    LocationKind.LEGACY.value,
                ),
            )
            rows = fetchall(cur)
            rosters = self._load_rosters(cur, [int(r["session_id"]) for r in rows])
            return [_row_to_session(r, rosters[int(r["session_id"])]) for r in rows]

    def set_geolocation(self, *, session_id: int, point: GeoPoint) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # Legacy rows are upgraded to LINK once they have coordinates.
            cur.execute(
                """
                UPDATE sessions
                SET latitude=%s, longitude=%s, location_type=%s
                WHERE session_id=%s
                """,
                (point.latitude, point.longitude, LocationKind.LINK.value, int(session_id)),
            )
            return cur.rowcount > 0
