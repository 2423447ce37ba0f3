"""Standard response envelopes shared by all routers."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: ``{success: true, message?, data}``."""

    success: bool = True
    message: str | None = None
    data: T


class ErrorResponse(BaseModel):
    """Error envelope: ``{success: false, message, error?}``."""

    success: bool = False
    message: str
    error: str | None = None
    details: Any = None


def error_body(message: str, error: str | None = None, details: Any = None) -> dict[str, Any]:
    """Build an error envelope as a plain dict, omitting empty optional fields."""
    body: dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    if details is not None:
        body["details"] = details
    return body


__all__ = ["ApiResponse", "ErrorResponse", "error_body"]
