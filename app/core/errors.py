from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 400
    error_type = "error"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "errorType": self.error_type, "message": self.message}
        body.update(self.extra)
        return body


class NotFound(AppError):
    status_code = 404
    error_type = "not-found"


class Forbidden(AppError):
    status_code = 403
    error_type = "forbidden"


class NotEligible(AppError):
    error_type = "not-eligible"


class EnrollmentConflict(AppError):
    """A booking that cannot be committed; the caller may pick another target."""

    status_code = 409


class AlreadyResolved(EnrollmentConflict):
    error_type = "already-resolved"


class AlreadyEnrolled(EnrollmentConflict):
    error_type = "already-enrolled"


class CapacityConflict(EnrollmentConflict):
    error_type = "seat-full"


class StorageFailure(AppError):
    status_code = 500
    error_type = "storage-failure"


class MalformedTimeData(ValueError):
    """Raised by the interval engine; never leaves the eligibility filter."""

    def __init__(self, value: Optional[str], reason: str = "invalid time"):
        super().__init__(f"{reason}: {value!r}")
        self.value = value


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
