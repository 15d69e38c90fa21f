from __future__ import annotations

from typing import Optional, Protocol

from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): the service layer depends on this interface, never on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def register_device(self, *, user_id: int, device_id: str, user_agent: str) -> bool:
        """Store the device identity only if none is registered yet.

        Returns True when this call performed the registration.
        """

        raise NotImplementedError
