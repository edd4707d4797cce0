"""
Error taxonomy.

Every failure the service reports to a caller is one of these. Each class
carries the HTTP status it maps to and a short machine-readable reason; the
API layer renders them as ``{"message": ..., "reason": ...}``.
"""

from __future__ import annotations


class TaskdeskError(Exception):
    """Base exception for all classified failures."""

    status_code: int = 500
    default_reason: str = "error"

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.default_reason

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "reason": self.reason}


class Unauthenticated(TaskdeskError):
    """Missing, malformed, expired, revoked or otherwise invalid credential."""

    status_code = 401
    default_reason = "invalid"


class Forbidden(TaskdeskError):
    """Authenticated, but not allowed to do this."""

    status_code = 403
    default_reason = "access"


class NotFound(TaskdeskError):
    status_code = 404
    default_reason = "not-found"


class InvalidInput(TaskdeskError):
    status_code = 400
    default_reason = "invalid-input"


class InvalidReference(InvalidInput):
    """A payload references a User that does not exist."""

    default_reason = "invalid-reference"


class Conflict(TaskdeskError):
    status_code = 409
    default_reason = "conflict"


class Internal(TaskdeskError):
    """Store or verifier failure. Carries the underlying description."""

    status_code = 500
    default_reason = "internal"

    def __init__(self, message: str, error: str | None = None):
        super().__init__(message)
        self.error = error

    def to_dict(self) -> dict[str, str]:
        data = super().to_dict()
        if self.error:
            data["error"] = self.error
        return data
