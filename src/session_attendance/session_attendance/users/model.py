from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User plus its device-binding state.

    Note: plain data object (no DB access code). ``registered_device_id`` and
    ``registered_user_agent`` stay None until the first successful check-in.
    """

    user_id: int
    org_id: int
    full_name: str
    role: Role = Role.END_USER
    email: Optional[str] = None
    registered_device_id: Optional[str] = None
    registered_user_agent: Optional[str] = None
