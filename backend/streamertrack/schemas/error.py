"""Standard error response schema."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ErrorResponse(BaseModel):
    # conflict responses carry extra counts (eventCount, deploymentCount, ...)
    model_config = ConfigDict(extra="allow")

    error: str
    detail: str


ERROR_RESPONSES: dict = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 403, 404, 409, 500)
}


def error_content(error: str, detail: str, **extra) -> dict:
    return ErrorResponse(error=error, detail=detail, **extra).model_dump()
