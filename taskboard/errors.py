from __future__ import annotations

from typing import Any, Optional


class ServiceError(Exception):
    """Base class for failures surfaced to the caller as-is."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class ForbiddenError(ServiceError):
    status_code = 403
    code = "forbidden"


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"


class BadRequestError(ServiceError):
    status_code = 400
    code = "bad_request"
