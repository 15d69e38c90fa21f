from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .enums import RejectionCode


class DomainError(Exception):
    """Base exception for business rule violations."""


class DuplicateAttendanceError(DomainError):
    """Raised by storage when the (user, session, occurrence) key already exists."""


@dataclass(frozen=True)
class Rejection:
    """Terminal edge of a check-in attempt: reason code, message and extras."""

    code: RejectionCode
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)


class CheckInRejected(DomainError):
    """Raised by an admission stage to stop the pipeline."""

    def __init__(self, code: RejectionCode, message: str, **details: Any):
        super().__init__(message)
        self.rejection = Rejection(code=code, message=message, details=details)


class LocationVerificationError(DomainError):
    """Raised by a location verifier. Every instance is a hard rejection."""

    def __init__(self, reason: RejectionCode, message: str, **details: Any):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.details = details
