"""Attendance admission engine.

One check-in attempt runs through a fixed sequence of stages::

    Received -> FieldValidated -> ScheduleConfirmed -> NotDuplicate -> WindowOpen
             -> LateClassified -> LocationCleared -> DeviceBound -> Committed

Each stage takes the current :class:`AdmissionContext` and returns the next one,
or raises :class:`CheckInRejected`. The first rejection ends the attempt; later
(more expensive) stages never run. There is no retry state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Optional, Sequence, Tuple

from ..common.datetime_utils import OrgClock
from ..common.validators import is_non_empty_str
from ..core.enums import AdmissionState, RejectionCode
from ..core.exceptions import CheckInRejected, DuplicateAttendanceError, LocationVerificationError, Rejection
from ..devices.guard import DeviceBinding, DeviceBindingGuard
from ..location.gate import LocationClearance, LocationGate
from ..location.verification import assert_complete
from ..organizations.model import OrganizationSettings
from ..organizations.service import OrganizationSettingsService
from ..sessions.model import Occurrence, Session
from ..sessions.repository import SessionRepository
from ..sessions.schedule import resolve_occurrence
from ..users.model import User
from ..users.repository import UserRepository
from .duplicates import DuplicateGuard
from .factory import AdmissionWindowFactory
from .model import AttendanceRecord, NewAttendance, VerificationSnapshot
from .repository import AttendanceRepository
from .strategies.base import AdmissionWindowStrategy, LatenessDecision
from .strategies.too_early_strategy import TooEarlyStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckInRequest:
    """Raw check-in attempt. ``user_id``/``org_id`` come from the authenticated identity."""

    user_id: int
    org_id: int
    session_id: Any
    device_id: Any
    user_agent: Any
    location: Any = None
    accuracy: Any = None
    client_timestamp: Any = None


@dataclass(frozen=True)
class AdmissionContext:
    request: CheckInRequest
    now: datetime
    state: AdmissionState = AdmissionState.RECEIVED
    session_id: Optional[int] = None
    user: Optional[User] = None
    session: Optional[Session] = None
    occurrence: Optional[Occurrence] = None
    settings: Optional[OrganizationSettings] = None
    window: Optional[AdmissionWindowStrategy] = None
    lateness: Optional[LatenessDecision] = None
    clearance: Optional[LocationClearance] = None
    binding: Optional[DeviceBinding] = None
    record: Optional[AttendanceRecord] = None


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class CheckInOutcome:
    """``state`` is Committed or Rejected; ``reached`` is the last stage passed."""

    state: AdmissionState
    reached: AdmissionState
    record: Optional[AttendanceRecord] = None
    rejection: Optional[Rejection] = None

    @property
    def created(self) -> bool:
        return self.record is not None

    def to_dict(self) -> dict:
        if self.record is not None:
            out = {
                "status": "created",
                "attendanceId": self.record.attendance_id,
                "isLate": self.record.is_late,
                "locationVerified": self.record.location_verified,
            }
            if self.record.late_by_minutes is not None:
                out["lateByMinutes"] = self.record.late_by_minutes
            return out

        if self.rejection is None:
            raise ValueError("outcome has neither a record nor a rejection")
        out = {
            "status": "rejected",
            "reasonCode": self.rejection.code.value,
            "humanMessage": self.rejection.message,
        }
        for k, v in self.rejection.details.items():
            out[_camel(k)] = v
        return out


def _as_session_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        session_id = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return session_id if session_id > 0 else None


Stage = Callable[[AdmissionContext], AdmissionContext]


class AdmissionEngine:
    def __init__(
        self,
        *,
        users: UserRepository,
        sessions: SessionRepository,
        attendance: AttendanceRepository,
        settings: OrganizationSettingsService,
        location_gate: LocationGate,
        clock: OrgClock,
        window_factory: AdmissionWindowFactory | None = None,
    ):
        self._users = users
        self._sessions = sessions
        self._attendance = attendance
        self._settings = settings
        self._gate = location_gate
        self._clock = clock
        self._window_factory = window_factory or AdmissionWindowFactory()
        self._duplicates = DuplicateGuard(attendance, clock)
        self._devices = DeviceBindingGuard(users)

        self._stages: Sequence[Tuple[AdmissionState, Stage]] = (
            (AdmissionState.FIELD_VALIDATED, self._validate_fields),
            (AdmissionState.SCHEDULE_CONFIRMED, self._confirm_schedule),
            (AdmissionState.NOT_DUPLICATE, self._check_duplicate),
            (AdmissionState.WINDOW_OPEN, self._check_window),
            (AdmissionState.LATE_CLASSIFIED, self._classify_lateness),
            (AdmissionState.LOCATION_CLEARED, self._clear_location),
            (AdmissionState.DEVICE_BOUND, self._bind_device),
            (AdmissionState.COMMITTED, self._commit),
        )

    def admit(self, request: CheckInRequest) -> CheckInOutcome:
        ctx = AdmissionContext(request=request, now=self._clock.now_utc())
        logger.info(
            "Check-in attempt: user=%s session=%s has_device=%s has_user_agent=%s",
            request.user_id,
            request.session_id,
            is_non_empty_str(request.device_id),
            is_non_empty_str(request.user_agent),
        )

        for target, stage in self._stages:
            try:
                ctx = replace(stage(ctx), state=target)
            except CheckInRejected as e:
                return self._reject(ctx, e.rejection)
            except Exception:
                logger.exception(
                    "Unexpected error after state %s (user=%s session=%s)",
                    ctx.state.value,
                    request.user_id,
                    request.session_id,
                )
                return self._reject(
                    ctx,
                    Rejection(code=RejectionCode.INTERNAL_ERROR, message="Server error. Attendance not marked."),
                )

        logger.info(
            "Attendance marked: attendance_id=%s user=%s session=%s late=%s",
            ctx.record.attendance_id,
            request.user_id,
            ctx.session_id,
            ctx.record.is_late,
        )
        return CheckInOutcome(state=ctx.state, reached=ctx.state, record=ctx.record)

    def _reject(self, ctx: AdmissionContext, rejection: Rejection) -> CheckInOutcome:
        logger.info(
            "Check-in REJECTED at %s: user=%s session=%s reason=%s",
            ctx.state.value,
            ctx.request.user_id,
            ctx.request.session_id,
            rejection.code.value,
        )
        return CheckInOutcome(state=AdmissionState.REJECTED, reached=ctx.state, rejection=rejection)

    # -- stages -----------------------------------------------------------

    def _validate_fields(self, ctx: AdmissionContext) -> AdmissionContext:
        req = ctx.request
        if not is_non_empty_str(req.device_id):
            raise CheckInRejected(
                RejectionCode.MISSING_DEVICE_ID,
                "Device ID is required. Please refresh the page and try again.",
            )
        if not is_non_empty_str(req.user_agent):
            raise CheckInRejected(
                RejectionCode.MISSING_USER_AGENT,
                "User Agent is required. Please refresh the page and try again.",
            )

        session_id = _as_session_id(req.session_id)
        if session_id is None:
            raise CheckInRejected(
                RejectionCode.INVALID_SESSION_ID,
                "Invalid Session ID. Please scan a valid QR code.",
            )

        user = self._users.get_by_id(req.user_id)
        if not user or user.org_id != req.org_id:
            raise CheckInRejected(RejectionCode.USER_NOT_FOUND, "User not found")

        session = self._sessions.get_by_id(session_id)
        if not session or session.org_id != req.org_id:
            raise CheckInRejected(RejectionCode.SESSION_NOT_FOUND, "Session not found")

        return replace(ctx, session_id=session_id, user=user, session=session)

    def _confirm_schedule(self, ctx: AdmissionContext) -> AdmissionContext:
        today = self._clock.today(ctx.now)
        occurrence = resolve_occurrence(ctx.session.schedule, today, self._clock)
        if occurrence is None:
            raise CheckInRejected(
                RejectionCode.NOT_SCHEDULED_TODAY,
                "Session is not scheduled for today. Please check the session date and try again.",
                today=today.isoformat(),
            )
        return replace(ctx, occurrence=occurrence)

    def _check_duplicate(self, ctx: AdmissionContext) -> AdmissionContext:
        if self._duplicates.already_checked_in(user_id=ctx.user.user_id, session=ctx.session, occurrence=ctx.occurrence):
            raise CheckInRejected(
                RejectionCode.ALREADY_CHECKED_IN,
                "You have already marked attendance for this session.",
            )
        return ctx

    def _check_window(self, ctx: AdmissionContext) -> AdmissionContext:
        settings = self._settings.get(ctx.session.org_id)
        now_local = self._clock.to_local(ctx.now)
        window = self._window_factory.for_checkin(now=now_local, occurrence=ctx.occurrence, settings=settings)
        if isinstance(window, TooEarlyStrategy):
            window.decide(now=now_local, occurrence=ctx.occurrence, settings=settings)
        return replace(ctx, settings=settings, window=window)

    def _classify_lateness(self, ctx: AdmissionContext) -> AdmissionContext:
        lateness = ctx.window.decide(
            now=self._clock.to_local(ctx.now),
            occurrence=ctx.occurrence,
            settings=ctx.settings,
        )
        return replace(ctx, lateness=lateness)

    def _clear_location(self, ctx: AdmissionContext) -> AdmissionContext:
        assignment = ctx.session.assignment_for(ctx.user.user_id)
        if assignment is None:
            raise CheckInRejected(RejectionCode.NOT_ASSIGNED, "You are not assigned to this session.")

        clearance = self._gate.clear(
            session=ctx.session,
            assignment=assignment,
            user_id=ctx.user.user_id,
            location=ctx.request.location,
            accuracy=ctx.request.accuracy,
        )
        return replace(ctx, clearance=clearance)

    def _bind_device(self, ctx: AdmissionContext) -> AdmissionContext:
        binding = self._devices.bind(
            ctx.user,
            device_id=ctx.request.device_id,
            user_agent=ctx.request.user_agent,
        )
        return replace(ctx, binding=binding)

    def _commit(self, ctx: AdmissionContext) -> AdmissionContext:
        clearance = ctx.clearance
        snapshot = None
        if clearance.required:
            try:
                result = assert_complete(clearance.result)
            except LocationVerificationError as e:
                logger.error("Commit blocked: incomplete verification for user=%s", ctx.user.user_id)
                raise CheckInRejected(e.reason, e.message)
            snapshot = VerificationSnapshot(
                confidence_score=float(result.confidence_score),
                accuracy_radius=float(result.accuracy_radius),
                reverse_geocode=result.reverse_geocode,
            )
        if not clearance.verified:
            raise CheckInRejected(
                RejectionCode.INCOMPLETE_VERIFICATION_DATA,
                "Location verification failed. Attendance cannot be marked.",
            )

        new = NewAttendance(
            user_id=ctx.user.user_id,
            session_id=ctx.session.session_id,
            occurrence_key=ctx.occurrence.occurrence_key,
            check_in_time=ctx.now,
            location_verified=True,
            is_late=ctx.lateness.is_late,
            late_by_minutes=ctx.lateness.late_by_minutes,
            device_id=ctx.binding.device_id,
            user_location=clearance.user_location,
            verification=snapshot,
        )
        try:
            attendance_id = self._attendance.insert_if_absent(new)
        except DuplicateAttendanceError:
            raise CheckInRejected(
                RejectionCode.ALREADY_CHECKED_IN,
                "You have already marked attendance for this session.",
            )

        try:
            self._devices.register(ctx.user, ctx.binding)
        except Exception:
            # A lost registration race must not leave an admitted record behind.
            self._attendance.delete(attendance_id)
            raise

        self._project_roster(ctx, is_late=new.is_late)

        record = AttendanceRecord(
            attendance_id=attendance_id,
            user_id=new.user_id,
            session_id=new.session_id,
            occurrence_key=new.occurrence_key,
            check_in_time=new.check_in_time,
            location_verified=new.location_verified,
            is_late=new.is_late,
            late_by_minutes=new.late_by_minutes,
            device_id=new.device_id,
            user_location=new.user_location,
            verification=new.verification,
        )
        return replace(ctx, record=record)

    def _project_roster(self, ctx: AdmissionContext, *, is_late: bool) -> None:
        # The attendance record is the source of truth; the roster flag is a projection.
        try:
            self._sessions.mark_roster_present(
                session_id=ctx.session.session_id,
                user_id=ctx.user.user_id,
                is_late=is_late,
            )
        except Exception:
            logger.exception(
                "Roster update failed after commit (user=%s session=%s); attendance record stands",
                ctx.user.user_id,
                ctx.session.session_id,
            )
