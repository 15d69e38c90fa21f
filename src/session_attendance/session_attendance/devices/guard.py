from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.enums import RejectionCode
from ..core.exceptions import CheckInRejected
from ..users.model import User
from ..users.repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceBinding:
    device_id: str
    user_agent: str
    needs_registration: bool = False


class DeviceBindingGuard:
    """One device+browser per user.

    The first successful attempt registers the presented identity; later
    attempts must present the same device id and, when one was recorded, the
    same user agent. Resetting a binding is an administrative action.

    ``bind`` only checks. The write happens in ``register`` once the
    attendance record exists.
    """

    def __init__(self, users: UserRepository):
        self._users = users

    def bind(self, user: User, *, device_id: str, user_agent: str) -> DeviceBinding:
        if not user.registered_device_id:
            return DeviceBinding(device_id=device_id, user_agent=user_agent, needs_registration=True)

        self.check(user, device_id=device_id, user_agent=user_agent)
        return DeviceBinding(device_id=device_id, user_agent=user_agent)

    def register(self, user: User, binding: DeviceBinding) -> None:
        if not binding.needs_registration:
            return
        if self._users.register_device(
            user_id=user.user_id,
            device_id=binding.device_id,
            user_agent=binding.user_agent,
        ):
            logger.info("Registered device for user %s", user.user_id)
            return

        # Another attempt registered first: check against what it stored.
        current = self._users.get_by_id(user.user_id)
        if current is None or not current.registered_device_id:
            raise CheckInRejected(
                RejectionCode.INTERNAL_ERROR,
                "Could not register your device. Please try again.",
            )
        self.check(current, device_id=binding.device_id, user_agent=binding.user_agent)

    @staticmethod
    def check(user: User, *, device_id: str, user_agent: str) -> None:
        if user.registered_device_id != device_id:
            logger.warning("Device mismatch for user %s", user.user_id)
            raise CheckInRejected(
                RejectionCode.DEVICE_MISMATCH,
                "Security Alert: You are not using the same device/browser you use everyday. "
                "Access Denied. Please contact your Admin to reset your device registration.",
            )

        # Legacy users have no recorded user agent; skip the secondary check for them.
        if user.registered_user_agent and user.registered_user_agent != user_agent:
            logger.warning("Browser signature mismatch for user %s (device id matched)", user.user_id)
            raise CheckInRejected(
                RejectionCode.DEVICE_CLONING_SUSPECTED,
                "Security Alert: Device ID matched but Browser Signature mismatch. Cloning detected.",
            )
