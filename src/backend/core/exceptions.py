"""
Domain error taxonomy.

Services raise these errors; the HTTP layer maps them to status codes through
the handler registered in ``main.py``. Each error carries a stable
machine-readable ``code`` alongside its human-readable message.
"""

from typing import Optional


class ForumError(Exception):
    """Base class for all expected, user-facing errors."""

    status_code: int = 500
    default_code: str = "error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationError(ForumError):
    """Bad input shape or value (invalid vote type, empty comment text...)."""

    status_code = 400
    default_code = "validation_error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        errors: Optional[list[str]] = None,
    ):
        super().__init__(message, code)
        self.errors = errors or []

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class UnauthorizedError(ForumError):
    """Missing, invalid or revoked session."""

    status_code = 401
    default_code = "unauthorized"


class ForbiddenError(ForumError):
    """Authenticated, but not a member/admin/owner/author."""

    status_code = 403
    default_code = "forbidden"


class NotFoundError(ForumError):
    """Referenced entity does not exist."""

    status_code = 404
    default_code = "not_found"


class ConflictError(ForumError):
    """Duplicate or state conflict (name taken, already a member...)."""

    status_code = 409
    default_code = "conflict"


class ConcurrencyError(ConflictError):
    """A concurrent writer invalidated a guarded read-modify-write."""

    default_code = "concurrent_update"


class DependencyError(ForumError):
    """Downstream mail or blob store failure."""

    status_code = 502
    default_code = "dependency_error"
