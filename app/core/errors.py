"""
Custom exception hierarchy for the habit engine.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class HabitEngineException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidInputError(HabitEngineException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_INPUT"

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details: dict[str, Any] = {}
        if field is not None:
            details["field"] = field
            details["value"] = None if value is None else str(value)
        super().__init__(message=message, details=details)


class HabitNotFoundError(HabitEngineException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "HABIT_NOT_FOUND"

    def __init__(self, habit_id: int):
        super().__init__(
            message=f"Habit {habit_id} was not found or you do not have access to it.",
            details={"habit_id": habit_id},
        )


class LogNotFoundError(HabitEngineException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "LOG_NOT_FOUND"

    def __init__(self, log_id: int | None = None, details: dict[str, Any] | None = None):
        if log_id is not None:
            message = f"Log {log_id} was not found or you do not have access to it."
            details = {"log_id": log_id, **(details or {})}
        else:
            message = "No log recorded for that habit and day."
        super().__init__(message=message, details=details)


class StoreUnavailableError(HabitEngineException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORE_UNAVAILABLE"

    def __init__(self, message: str = "The habit store is currently unreachable."):
        super().__init__(message=message)


class RecomputeFailedError(HabitEngineException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "DERIVED_FIELDS_STALE"

    def __init__(self, habit_id: int, log_id: int | None = None):
        details: dict[str, Any] = {"habit_id": habit_id}
        if log_id is not None:
            details["log_id"] = log_id
        super().__init__(
            message=(
                f"Log was saved but streak fields for habit {habit_id} could not be "
                f"refreshed. Run POST /habits/{habit_id}/recompute to repair."
            ),
            details=details,
        )


class BatchTooLargeError(HabitEngineException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "BATCH_TOO_LARGE"

    def __init__(self, max_items: int, received: int):
        super().__init__(
            message=f"Batch exceeds maximum size of {max_items} items. Received {received}.",
            details={"max_items": max_items, "received": received},
        )


class EmptyBatchError(HabitEngineException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "EMPTY_BATCH"

    def __init__(self):
        super().__init__(message="Batch must contain at least one item.")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def habit_engine_exception_handler(
    request: Request, exc: HabitEngineException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def store_unavailable_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("store unavailable on %s %s: %s", request.method, request.url.path, exc)
    err = StoreUnavailableError()
    return JSONResponse(status_code=err.http_status, content=err.to_dict())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
