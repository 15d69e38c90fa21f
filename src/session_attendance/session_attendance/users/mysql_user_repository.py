from __future__ import annotations

from typing import Optional

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import User
from .repository import UserRepository

_USER_COLUMNS = "user_id, org_id, full_name, email, role, registered_device_id, registered_user_agent"


def _row_to_user(r: dict) -> User:
    return User(
        user_id=int(r["user_id"]),
        org_id=int(r["org_id"]),
        full_name=r["full_name"],
        email=r.get("email"),
        role=Role(r.get("role") or Role.END_USER.value),
        registered_device_id=r.get("registered_device_id"),
        registered_user_agent=r.get("registered_user_agent"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            r = fetchone(cur)
            return _row_to_user(r) if r else None

    def register_device(self, *, user_id: int, device_id: str, user_agent: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET registered_device_id=%s, registered_user_agent=%s
                WHERE user_id=%s AND registered_device_id IS NULL
                """,
                (device_id, user_agent, int(user_id)),
            )
            return cur.rowcount > 0
