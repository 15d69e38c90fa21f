from __future__ import annotations

from datetime import date

import pytest
import requests

from src.session_attendance.session_attendance.attendance.engine import CheckInOutcome
from src.session_attendance.session_attendance.core.enums import (
    AdmissionState,
    AttendanceMode,
    Frequency,
    LocationKind,
    RejectionCode,
    SessionType,
)
from src.session_attendance.session_attendance.core.exceptions import DuplicateAttendanceError, Rejection
from src.session_attendance.session_attendance.organizations.model import OrganizationSettings
from src.session_attendance.session_attendance.sessions.model import LocationDescriptor, RosterEntry

from tests.support import OFFICE, OFFICE_POLYGON, InMemoryAttendance, InMemoryUsers, make_session, make_user

MONDAY = date(2026, 3, 2)
TUESDAY = date(2026, 3, 3)
OFFICE_LINK = f"https://maps.google.com/?q={OFFICE.latitude},{OFFICE.longitude}"


def assert_rejected(outcome, code):
    assert not outcome.created, outcome
    assert outcome.state == AdmissionState.REJECTED
    assert outcome.rejection.code == code, outcome.rejection


# -- end-to-end scenarios --------------------------------------------------


def test_physical_inside_geofence_one_hour_early_is_created(world_factory):
    session = make_session(location=LocationDescriptor(geolocation=OFFICE, geofence=OFFICE_POLYGON))
    world = world_factory(session=session).at(MONDAY, "09:00")

    outcome = world.admit()

    assert outcome.created
    assert outcome.state == AdmissionState.COMMITTED
    assert outcome.to_dict()["isLate"] is False
    assert world.http.endpoints_called() == ["rev_geocode", "geofence/check"]

    (record,) = world.attendance.records
    assert record.location_verified
    assert record.occurrence_key == "once"
    assert record.verification.confidence_score == 0.85
    assert record.verification.reverse_geocode.city == "Pune"
    assert world.sessions.roster_updates == [(10, 1, False)]


def test_low_accuracy_rejected_without_provider_call(world):
    outcome = world.admit(accuracy=100)

    assert_rejected(outcome, RejectionCode.ACCURACY_TOO_LOW)
    assert world.http.calls == []
    assert world.attendance.records == []


def test_zero_zero_fix_rejected_without_provider_call(world):
    outcome = world.admit(location={"latitude": 0, "longitude": 0})

    assert_rejected(outcome, RejectionCode.INVALID_LOCATION_ZERO)
    assert world.http.calls == []


def test_unresolvable_link_location_rejected_without_provider_call(world_factory):
    session = make_session(location=LocationDescriptor(kind=LocationKind.LINK, link="https://example.com/office"))
    world = world_factory(session=session)

    outcome = world.admit()

    assert_rejected(outcome, RejectionCode.SESSION_LOCATION_NOT_CONFIGURED)
    assert outcome.to_dict()["locationType"] == "LINK"
    assert world.http.calls == []


def test_link_location_200m_away_rejected_after_provider_call(world_factory):
    session = make_session(location=LocationDescriptor(kind=LocationKind.LINK, link=OFFICE_LINK))
    world = world_factory(session=session)

    outcome = world.admit(location={"latitude": OFFICE.latitude + 0.0018, "longitude": OFFICE.longitude})

    assert_rejected(outcome, RejectionCode.LOCATION_TOO_FAR)
    assert outcome.to_dict()["requiredRadius"] == 100
    assert world.http.endpoints_called() == ["rev_geocode"]
    assert world.attendance.records == []


def test_weekly_session_not_scheduled_on_tuesday_regardless_of_other_checks(world_factory):
    session = make_session(frequency=Frequency.WEEKLY, weekly_days={"Monday", "Wednesday"})
    user = make_user(registered_device_id="someone-else")
    world = world_factory(session=session, user=user).at(TUESDAY, "09:30")

    outcome = world.admit(location=None, accuracy=None)

    assert_rejected(outcome, RejectionCode.NOT_SCHEDULED_TODAY)
    assert outcome.reached == AdmissionState.FIELD_VALIDATED
    assert world.http.calls == []


def test_remote_session_created_without_provider_call(world_factory):
    world = world_factory(session=make_session(session_type=SessionType.REMOTE))

    outcome = world.admit(location=None, accuracy=None)

    assert outcome.created
    assert outcome.to_dict()["locationVerified"] is True
    assert world.http.calls == []
    assert world.attendance.records[0].verification is None


# -- boundaries ------------------------------------------------------------


def test_accuracy_exactly_at_threshold_passes(world):
    assert world.admit(accuracy=50).created


def test_accuracy_at_payload_limit_still_meets_provider_threshold(world):
    # 1000m is a well-formed reading; the provider threshold rejects it.
    assert_rejected(world.admit(accuracy=1000), RejectionCode.ACCURACY_TOO_LOW)
    assert_rejected(world.admit(accuracy=1001), RejectionCode.INVALID_ACCURACY)


def test_scan_window_start_is_open(world):
    assert world.at(MONDAY, "08:00").admit().created


def test_one_second_before_window_is_too_early(world):
    outcome = world.at(MONDAY, "07:59", seconds=59).admit()

    assert_rejected(outcome, RejectionCode.TOO_EARLY)
    body = outcome.to_dict()
    assert body["scanWindowStartTime"] == "8:00 AM"
    assert body["minutesRemaining"] == 0


def test_exact_start_is_on_time(world):
    outcome = world.at(MONDAY, "10:00").admit()
    assert outcome.created
    assert outcome.record.is_late is False
    assert "lateByMinutes" not in outcome.to_dict()


def test_one_second_after_start_is_late(world):
    outcome = world.at(MONDAY, "10:00", seconds=1).admit()
    assert outcome.record.is_late
    assert outcome.record.late_by_minutes == 0
    assert world.sessions.roster_updates == [(10, 1, True)]


def test_strict_mode_rejects_past_limit(world_factory):
    world = world_factory(settings=OrganizationSettings(late_attendance_limit_minutes=15, is_strict_attendance=True))

    assert_rejected(world.at(MONDAY, "10:16").admit(), RejectionCode.LATE_STRICT_MODE)
    assert world.http.calls == []
    assert world.at(MONDAY, "10:15").admit().created


def test_lenient_mode_accepts_past_limit_as_late(world_factory):
    world = world_factory(settings=OrganizationSettings(late_attendance_limit_minutes=15, is_strict_attendance=False))

    outcome = world.at(MONDAY, "10:40").admit()

    assert outcome.created
    assert outcome.to_dict()["lateByMinutes"] == 40


def test_settings_failure_falls_back_to_defaults(world_factory):
    world = world_factory(broken_settings=True)
    # Default limit 30, non-strict: 45 minutes late is still admitted.
    outcome = world.at(MONDAY, "10:45").admit()
    assert outcome.created
    assert outcome.record.late_by_minutes == 45


def test_local_date_decides_the_occurrence(world_factory):
    # 00:30 IST on Monday is still Sunday in UTC.
    world = world_factory(session=make_session(start_time="01:00", end_time="02:00")).at(MONDAY, "00:30")
    assert world.admit().created


# -- device binding --------------------------------------------------------


def test_first_checkin_registers_device(world):
    world.admit()
    assert world.users.get_by_id(1).registered_device_id == "device-abc"


def test_device_mismatch_always_rejects(world_factory):
    world = world_factory(user=make_user(registered_device_id="device-xyz", registered_user_agent="UA"))

    outcome = world.admit()

    assert_rejected(outcome, RejectionCode.DEVICE_MISMATCH)
    assert outcome.reached == AdmissionState.LOCATION_CLEARED
    assert world.attendance.records == []


def test_device_cloning_suspected(world_factory):
    world = world_factory(user=make_user(registered_device_id="device-abc", registered_user_agent="Other UA"))
    assert_rejected(world.admit(), RejectionCode.DEVICE_CLONING_SUSPECTED)


def test_failed_insert_leaves_device_unregistered(world):
    def boom(record):
        raise RuntimeError("db down")

    world.attendance.insert_if_absent = boom

    assert_rejected(world.admit(), RejectionCode.INTERNAL_ERROR)
    assert world.users.get_by_id(1).registered_device_id is None


def test_duplicate_at_insert_leaves_device_unregistered(world):
    def taken(record):
        raise DuplicateAttendanceError("concurrent winner")

    world.attendance.insert_if_absent = taken

    assert_rejected(world.admit(), RejectionCode.ALREADY_CHECKED_IN)
    assert world.users.get_by_id(1).registered_device_id is None


class RacingUsers(InMemoryUsers):
    """Another device registers between the device check and the commit."""

    def register_device(self, *, user_id, device_id, user_agent):
        super().register_device(user_id=user_id, device_id="device-xyz", user_agent="UA")
        return False


def test_lost_registration_race_removes_the_record(world):
    world.users = RacingUsers(make_user())

    outcome = world.admit()

    assert_rejected(outcome, RejectionCode.DEVICE_MISMATCH)
    assert outcome.reached == AdmissionState.DEVICE_BOUND
    assert world.attendance.records == []
    assert world.sessions.roster_updates == []
    assert world.users.get_by_id(1).registered_device_id == "device-xyz"


# -- duplicates / idempotency ----------------------------------------------


def test_second_attempt_rejected_before_location(world):
    assert world.admit().created
    calls_after_first = len(world.http.calls)

    outcome = world.admit()

    assert_rejected(outcome, RejectionCode.ALREADY_CHECKED_IN)
    assert outcome.reached == AdmissionState.SCHEDULE_CONFIRMED
    assert len(world.http.calls) == calls_after_first
    assert len(world.attendance.records) == 1


class BlindAttendance(InMemoryAttendance):
    """Pre-check never sees the concurrent winner; the unique key still does."""

    def find_for_session(self, *, user_id, session_id):
        return None

    def find_in_window(self, **kw):
        return None


def test_concurrent_duplicate_caught_by_unique_key(world):
    world.attendance = BlindAttendance()
    assert world.admit().created

    outcome = world.admit()

    assert_rejected(outcome, RejectionCode.ALREADY_CHECKED_IN)
    assert outcome.reached == AdmissionState.DEVICE_BOUND
    assert len(world.attendance.records) == 1


def test_recurring_session_admits_once_per_day(world_factory):
    world = world_factory(session=make_session(frequency=Frequency.DAILY))

    assert world.at(MONDAY, "09:30").admit().created
    assert_rejected(world.at(MONDAY, "10:05").admit(), RejectionCode.ALREADY_CHECKED_IN)
    assert world.at(TUESDAY, "09:30").admit().created

    assert [r.occurrence_key for r in world.attendance.records] == ["2026-03-02", "2026-03-03"]


# -- field validation & assignment ------------------------------------------


@pytest.mark.parametrize(
    "overrides, code",
    [
        ({"device_id": None}, RejectionCode.MISSING_DEVICE_ID),
        ({"device_id": "   "}, RejectionCode.MISSING_DEVICE_ID),
        ({"user_agent": ""}, RejectionCode.MISSING_USER_AGENT),
        ({"session_id": "abc"}, RejectionCode.INVALID_SESSION_ID),
        ({"session_id": True}, RejectionCode.INVALID_SESSION_ID),
        ({"session_id": 10.7}, RejectionCode.INVALID_SESSION_ID),
        ({"session_id": float("nan")}, RejectionCode.INVALID_SESSION_ID),
        ({"session_id": "10.0"}, RejectionCode.INVALID_SESSION_ID),
        ({"session_id": 99}, RejectionCode.SESSION_NOT_FOUND),
        ({"user_id": 42}, RejectionCode.USER_NOT_FOUND),
        ({"org_id": 2}, RejectionCode.USER_NOT_FOUND),
    ],
)
def test_field_validation(world, overrides, code):
    outcome = world.admit(**overrides)
    assert_rejected(outcome, code)
    assert outcome.reached == AdmissionState.RECEIVED


def test_integral_float_session_id_is_accepted(world):
    assert world.admit(session_id=10.0).created


def test_session_from_another_org_is_not_found(world_factory):
    world = world_factory(session=make_session(org_id=7))
    assert_rejected(world.admit(), RejectionCode.SESSION_NOT_FOUND)


def test_unassigned_user_rejected(world_factory):
    world = world_factory(session=make_session(roster=(RosterEntry(user_id=2),)))

    assert_rejected(world.admit(), RejectionCode.NOT_ASSIGNED)
    assert world.http.calls == []


def test_hybrid_remote_member_skips_location(world_factory):
    roster = (RosterEntry(user_id=1, mode=AttendanceMode.REMOTE),)
    world = world_factory(session=make_session(session_type=SessionType.HYBRID, roster=roster))

    assert world.admit(location=None, accuracy=None).created
    assert world.http.calls == []


# -- failure handling ------------------------------------------------------


def test_roster_update_failure_does_not_undo_admission(world):
    world.sessions.fail_roster_update = True

    outcome = world.admit()

    assert outcome.created
    assert len(world.attendance.records) == 1


def test_unexpected_error_becomes_internal_error(world):
    def boom(session_id):
        raise RuntimeError("db down")

    world.sessions.get_by_id = boom

    outcome = world.admit()

    assert_rejected(outcome, RejectionCode.INTERNAL_ERROR)
    assert world.attendance.records == []


def test_provider_timeout_is_a_hard_rejection(world):
    world.http.routes["rev_geocode"] = requests.Timeout("slow")

    assert_rejected(world.admit(), RejectionCode.UPSTREAM_TIMEOUT)
    assert world.attendance.records == []


def test_rejection_body_uses_camel_case_details(world):
    body = world.at(MONDAY, "06:00").admit().to_dict()

    assert body["status"] == "rejected"
    assert body["reasonCode"] == "TOO_EARLY"
    assert body["hoursRemaining"] == 2
    assert "humanMessage" in body


def test_outcome_without_record_or_rejection_cannot_be_rendered():
    outcome = CheckInOutcome(state=AdmissionState.REJECTED, reached=AdmissionState.RECEIVED)
    with pytest.raises(ValueError):
        outcome.to_dict()


def test_rendered_rejection_keeps_reason_code():
    rejection = Rejection(code=RejectionCode.NOT_ASSIGNED, message="nope")
    outcome = CheckInOutcome(state=AdmissionState.REJECTED, reached=AdmissionState.LATE_CLASSIFIED, rejection=rejection)
    assert outcome.to_dict()["reasonCode"] == "NOT_ASSIGNED"
