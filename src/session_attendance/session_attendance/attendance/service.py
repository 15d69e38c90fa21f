from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..core.enums import RosterStatus
from ..sessions.model import RosterEntry, Session
from ..sessions.repository import SessionRepository
from ..users.repository import UserRepository
from .engine import AdmissionEngine, CheckInOutcome, CheckInRequest
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """A record joined with its session; ``session`` is None once the session is gone."""

    record: AttendanceRecord
    session: Optional[Session]

    def to_dict(self) -> dict:
        out = self.record.to_dict()
        out["session"] = self.session.to_summary() if self.session else None
        return out


@dataclass(frozen=True)
class SessionAttendance:
    session: Session
    records: Sequence[AttendanceRecord]
    on_leave: Sequence[RosterEntry]

    def to_dict(self) -> dict:
        rows: List[dict] = [r.to_dict() for r in self.records]
        for entry in self.on_leave:
            rows.append(
                {
                    "userId": entry.user_id,
                    "sessionId": self.session.session_id,
                    "status": entry.attendance_status.value,
                    "checkInTime": None,
                    "isLate": False,
                }
            )
        return {
            "sessionId": self.session.session_id,
            "name": self.session.name,
            "records": rows,
        }


class AttendanceService:
    """Attendance use cases: admission plus read-only history."""

    def __init__(
        self,
        engine: AdmissionEngine,
        attendance_repo: AttendanceRepository,
        sessions_repo: SessionRepository,
        users_repo: UserRepository,
    ):
        self.engine = engine
        self.attendance_repo = attendance_repo
        self.sessions_repo = sessions_repo
        self.users_repo = users_repo

    def check_in(self, request: CheckInRequest) -> CheckInOutcome:
        return self.engine.admit(request)

    def history(self, user_id: int, *, limit: Optional[int] = None) -> Sequence[HistoryEntry]:
        """The user's records with their sessions, newest first. No cap unless ``limit`` is given."""
        records = self.attendance_repo.list_for_user(user_id, limit=limit)
        sessions = self.sessions_repo.get_many({r.session_id for r in records}) if records else {}
        return [HistoryEntry(record=r, session=sessions.get(r.session_id)) for r in records]

    def user_history(self, user_id: int, *, org_id: int) -> Optional[Sequence[HistoryEntry]]:
        """History of another user, for managers. None when the user is not in ``org_id``."""
        user = self.users_repo.get_by_id(user_id)
        if user is None or user.org_id != org_id:
            return None
        return self.history(user_id)

    def session_attendance(self, session_id: int, *, org_id: int) -> Optional[SessionAttendance]:
        """Records for one session, plus roster entries marked On Leave.

        Returns None when the session does not exist in the caller's organization.
        """
        session = self.sessions_repo.get_by_id(session_id)
        if session is None or session.org_id != org_id:
            return None

        records = self.attendance_repo.list_for_session(session_id)
        recorded = {r.user_id for r in records}
        on_leave = [
            e
            for e in session.assigned_users
            if e.attendance_status == RosterStatus.ON_LEAVE and e.user_id not in recorded
        ]
        logger.debug(
            "Session %s attendance: %s records, %s on leave", session_id, len(records), len(on_leave)
        )
        return SessionAttendance(session=session, records=records, on_leave=on_leave)
