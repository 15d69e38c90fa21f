from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, NewAttendance


class AttendanceRepository(Protocol):
    def find_for_session(self, *, user_id: int, session_id: int) -> Optional[AttendanceRecord]:
        """Any record for (user, session), regardless of date."""

        raise NotImplementedError

    def find_in_window(
        self,
        *,
        user_id: int,
        session_id: int,
        start_utc: datetime,
        end_utc: datetime,
    ) -> Optional[AttendanceRecord]:
        """A record whose check_in_time is in ``[start_utc, end_utc)``."""

        raise NotImplementedError

    def insert_if_absent(self, record: NewAttendance) -> int:
        """Create the record; raise DuplicateAttendanceError if its key exists.

        Returns attendance_id.
        """

        raise NotImplementedError

    def delete(self, attendance_id: int) -> None:
        raise NotImplementedError

    def list_for_user(self, user_id: int, *, limit: Optional[int] = None) -> Sequence[AttendanceRecord]:
        """Newest first; every record unless ``limit`` is given."""

        raise NotImplementedError

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
