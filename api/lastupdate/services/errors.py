"""Domain errors raised by services and rendered by the API layer.

Each error carries a machine readable ``code`` that clients branch on
(``INVALID_DATA``, ``MISSING_FIELDS``...) plus optional extra fields that
end up next to it in the response ``detail``.
"""

from __future__ import annotations

from typing import Any

from fastapi import status


class ServiceError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "INVALID_DATA"

    def __init__(self, message: str, code: str | None = None, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.extra = extra

    @property
    def detail(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.extra}


class InvalidDataError(ServiceError, ValueError):
    """Malformed or missing input (400)."""


class ForbiddenError(ServiceError, PermissionError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class NotFoundError(ServiceError, LookupError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class TransitionError(ConflictError):
    """Requested publication status change is not allowed from the current status."""

    code = "INVALID_TRANSITION"


class UnavailableError(ServiceError):
    """An upstream dependency could not be reached and nothing cached is usable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "UNAVAILABLE"
