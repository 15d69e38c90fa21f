from __future__ import annotations

from typing import Optional

from ..common.datetime_utils import OrgClock
from ..sessions.model import Occurrence, Session
from .model import AttendanceRecord
from .repository import AttendanceRepository


class DuplicateGuard:
    """Fast pre-check for an already accepted check-in on this occurrence.

    Read-only. The storage unique key on (user, session, occurrence_key) is
    what actually guarantees at-most-once.
    """

    def __init__(self, attendance: AttendanceRepository, clock: OrgClock):
        self._attendance = attendance
        self._clock = clock

    def existing(self, *, user_id: int, session: Session, occurrence: Occurrence) -> Optional[AttendanceRecord]:
        if not session.is_recurring:
            return self._attendance.find_for_session(user_id=user_id, session_id=session.session_id)

        start_utc, end_utc = self._clock.local_day_bounds_utc(occurrence.day)
        return self._attendance.find_in_window(
            user_id=user_id,
            session_id=session.session_id,
            start_utc=start_utc,
            end_utc=end_utc,
        )

    def already_checked_in(self, *, user_id: int, session: Session, occurrence: Occurrence) -> bool:
        return self.existing(user_id=user_id, session=session, occurrence=occurrence) is not None
