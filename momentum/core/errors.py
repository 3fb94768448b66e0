"""
Custom exception hierarchy for the Momentum engine.

Rule: every error that crosses the engine boundary carries a machine-readable
`code` string so callers can branch on it without parsing English messages.

Only InvalidInputError and DataUnavailableError leave the engine core.
PartialDataDefault is raised and absorbed inside the Analytics Aggregator.
"""
from __future__ import annotations

from typing import Any

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class MomentumError(Exception):
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


class InvalidInputError(MomentumError):
    """Malformed user id, period or date range. Rejected before any query."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_INPUT"

    def __init__(self, field: str, message: str, value: Any = None):
        details: dict[str, Any] = {"field": field}
        if value is not None:
            details["value"] = str(value)
        super().__init__(message=message, details=details)


class DataUnavailableError(MomentumError):
    """The event store itself cannot be reached."""
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "DATA_UNAVAILABLE"

    def __init__(self, message: str = "The event store is unreachable.", reason: str | None = None):
        super().__init__(
            message=message,
            details={"reason": reason} if reason else {},
        )


class PartialDataDefault(MomentumError):
    """A single sub-collaborator failed or timed out; its default is used instead."""
    code = "PARTIAL_DATA_DEFAULT"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(
            message=f"Sub-result '{source}' defaulted: {reason}",
            details={"source": source, "reason": reason},
        )


class BatchTooLargeError(MomentumError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "BATCH_TOO_LARGE"

    def __init__(self, max_items: int, received: int):
        super().__init__(
            message=f"Batch exceeds maximum size of {max_items} events. Received {received}.",
            details={"max_items": max_items, "received": received},
        )


class HabitNotFoundError(MomentumError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "HABIT_NOT_FOUND"

    def __init__(self, habit_id: int, user_id: str):
        super().__init__(
            message=f"Habit {habit_id} not found for user {user_id}.",
            details={"habit_id": habit_id, "user_id": user_id},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def momentum_exception_handler(request: Request, exc: MomentumError) -> JSONResponse:
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


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=f"{exc.__class__.__name__}: {exc}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
