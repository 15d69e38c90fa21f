from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from mysql.connector import errorcode
from mysql.connector import errors as mysql_errors

from ..core.exceptions import DuplicateAttendanceError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from ..location.verification import ReverseGeocode
from ..sessions.model import GeoPoint
from .model import AttendanceRecord, NewAttendance, VerificationSnapshot
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, user_id, session_id, occurrence_key, check_in_time, location_verified,
    is_late, late_by_minutes, user_latitude, user_longitude, device_id,
    confidence_score, accuracy_radius, reverse_geocode
"""


def _to_db_time(value: datetime) -> datetime:
    # Stored as naive UTC.
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _row_to_record(r: dict) -> AttendanceRecord:
    user_location = None
    if r.get("user_latitude") is not None and r.get("user_longitude") is not None:
        user_location = GeoPoint(latitude=float(r["user_latitude"]), longitude=float(r["user_longitude"]))

    verification = None
    geocode = load_json(r.get("reverse_geocode"))
    if geocode and r.get("confidence_score") is not None and r.get("accuracy_radius") is not None:
        verification = VerificationSnapshot(
            confidence_score=float(r["confidence_score"]),
            accuracy_radius=float(r["accuracy_radius"]),
            reverse_geocode=ReverseGeocode(**geocode),
        )

    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        session_id=int(r["session_id"]),
        occurrence_key=r["occurrence_key"],
        check_in_time=r["check_in_time"].replace(tzinfo=timezone.utc),
        location_verified=bool(r["location_verified"]),
        is_late=bool(r["is_late"]),
        late_by_minutes=int(r["late_by_minutes"]) if r.get("late_by_minutes") is not None else None,
        device_id=r["device_id"],
        user_location=user_location,
        verification=verification,
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_for_session(self, *, user_id: int, session_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE user_id=%s AND session_id=%s
                ORDER BY check_in_time DESC
                LIMIT 1
                """,
                (int(user_id), int(session_id)),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def find_in_window(
        self,
        *,
        user_id: int,
        session_id: int,
        start_utc: datetime,
        end_utc: datetime,
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE user_id=%s AND session_id=%s
                  AND check_in_time >= %s AND check_in_time < %s
                LIMIT 1
                """,
                (int(user_id), int(session_id), _to_db_time(start_utc), _to_db_time(end_utc)),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def insert_if_absent(self, record: NewAttendance) -> int:
        snapshot = record.verification
        location = record.user_location
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        user_id, session_id, occurrence_key, check_in_time, location_verified,
                        is_late, late_by_minutes, user_latitude, user_longitude, device_id,
                        confidence_score, accuracy_radius, reverse_geocode
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(record.user_id),
                        int(record.session_id),
                        record.occurrence_key,
                        _to_db_time(record.check_in_time),
                        1 if record.location_verified else 0,
                        1 if record.is_late else 0,
                        record.late_by_minutes,
                        location.latitude if location else None,
                        location.longitude if location else None,
                        record.device_id,
                        snapshot.confidence_score if snapshot else None,
                        snapshot.accuracy_radius if snapshot else None,
                        dump_json(snapshot.reverse_geocode.to_dict()) if snapshot else None,
                    ),
                )
                return int(cur.lastrowid)
        except mysql_errors.IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise DuplicateAttendanceError(
                    f"attendance exists for user={record.user_id} session={record.session_id} "
                    f"occurrence={record.occurrence_key}"
                ) from e
            raise

    def delete(self, attendance_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))

    def list_for_user(self, user_id: int, *, limit: Optional[int] = None) -> Sequence[AttendanceRecord]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM attendance_records
            WHERE user_id=%s
            ORDER BY check_in_time DESC
        """
        params: tuple = (int(user_id),)
        if limit is not None:
            sql += " LIMIT %s"
            params += (int(limit),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE session_id=%s
                ORDER BY check_in_time DESC
                """,
                (int(session_id),),
            )
            return [_row_to_record(r) for r in fetchall(cur)]
