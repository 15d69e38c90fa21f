from __future__ import annotations

from typing import Callable, Optional

import pytest

from src.session_attendance.session_attendance.core.enums import AttendanceMode, RosterStatus
from src.session_attendance.session_attendance.sessions.model import RosterEntry, Session
from src.session_attendance.session_attendance.users.model import User

from tests.support import (
    FakeHttp,
    InMemoryAttendance,
    InMemorySessions,
    InMemorySettings,
    InMemoryUsers,
    World,
    make_session,
    make_user,
)


@pytest.fixture
def world_factory() -> Callable[..., World]:
    def build(*, session: Optional[Session] = None, user: Optional[User] = None, settings=None, broken_settings=False):
        return World(
            users=InMemoryUsers(user or make_user()),
            sessions=InMemorySessions(session or make_session()),
            attendance=InMemoryAttendance(),
            settings=InMemorySettings(settings, broken=broken_settings),
            http=FakeHttp(),
        )

    return build


@pytest.fixture
def world(world_factory) -> World:
    return world_factory()


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def roster_on_leave():
    return (
        RosterEntry(user_id=1, mode=AttendanceMode.PHYSICAL),
        RosterEntry(user_id=2, mode=AttendanceMode.PHYSICAL, attendance_status=RosterStatus.ON_LEAVE),
    )
