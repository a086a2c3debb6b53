"""Coded service errors.

Services raise these; the API layer turns them into
``{"detail": {"code": ..., "message": ...}}`` responses.
"""

from __future__ import annotations


class ServiceError(Exception):
    code = "INTERNAL"
    status_code = 500

    def __init__(self, message: str = "", **context) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.context = context

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        if self.context:
            detail.update(self.context)
        return detail


class Unauthorized(ServiceError):
    code = "UNAUTHORIZED"
    status_code = 401


class Forbidden(ServiceError):
    code = "FORBIDDEN"
    status_code = 403


class NotFound(ServiceError):
    code = "NOT_FOUND"
    status_code = 404


class BadRequest(ServiceError):
    code = "BAD_REQUEST"
    status_code = 400


class Conflict(ServiceError):
    code = "CONFLICT"
    status_code = 409
