"""Error taxonomy for the reservation core.

Every failure the core surfaces to a caller is one of these. The
``code`` tells the presentation layer how to react: report inline,
clear a selection, offer a manual retry, or send the golfer to log in.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Enumeration of all possible error codes."""

    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    AUTH_REQUIRED = "auth_required"
    NOT_YET_AVAILABLE = "not_yet_available"
    INVALID_TRANSITION = "invalid_transition"


class BookingError(Exception):
    """Base exception for all reservation core errors."""

    code: ErrorCode = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Code: {self.code.value}, Details: {self.details})"
        return f"{self.message} (Code: {self.code.value})"


class ValidationError(BookingError):
    """User-correctable input problem. Reported inline, never retried."""

    code = ErrorCode.VALIDATION_FAILED


class ConflictError(BookingError):
    """Slot or resource is no longer available; the golfer must re-choose."""

    code = ErrorCode.CONFLICT


class UpstreamError(BookingError):
    """A collaborator is unavailable. Safe to retry manually."""

    code = ErrorCode.UPSTREAM_UNAVAILABLE


class AuthError(BookingError):
    """Caller identity is missing or expired. Terminal; re-authenticate."""

    code = ErrorCode.AUTH_REQUIRED


class NotYetAvailable(BookingError):
    """Transient: the asynchronous confirmation has not landed yet."""

    code = ErrorCode.NOT_YET_AVAILABLE


class BookingNotFound(NotYetAvailable):
    """Lookup by checkout session found no booking (yet)."""


class InvalidTransitionError(BookingError):
    """Raised when a step transition is not valid from the current step."""

    code = ErrorCode.INVALID_TRANSITION
