"""
Shared schema primitives used across the API.
"""
from typing import Annotated, Any, Optional

from fastapi import Query
from pydantic import BaseModel, ConfigDict

USER_ID_REGEX = r"^[A-Za-z0-9_-]{1,64}$"


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


# Query parameter shared by every per-user read endpoint.
UserIdQuery = Annotated[str, Query(
    pattern=USER_ID_REGEX,
    description="Owner of the data: 1-64 letters, digits, '_' or '-'.",
    examples=["user_42"],
)]

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    422: {"model": ErrorResponse, "description": "Invalid user id, period or date range."},
    503: {"model": ErrorResponse, "description": "The event store is unreachable."},
}
