"""
Request/response envelope used by the request facade and the HTTP surface.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class FacadeRequest(BaseModel):
    """A named operation and its arguments."""

    operation: str = Field(..., min_length=1, description="Operation name, e.g. 'prompt:create'")
    args: Dict[str, Any] = Field(default_factory=dict, description="Operation arguments")


class ApiError(BaseModel):
    """Machine-readable error code plus human readable message."""

    code: str = Field(..., description="Error code, e.g. NOT_FOUND or CREATE_FAILED")
    message: str = Field(..., description="Error description")


class ApiResponse(BaseModel):
    """
    Result envelope.

    Exactly one of ``data`` (on success) or ``error`` (on failure) is
    meaningful; ``to_payload`` drops the other one.
    """

    success: bool
    data: Any = None
    error: Optional[ApiError] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ApiResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: str, message: str) -> "ApiResponse":
        return cls(success=False, error=ApiError(code=code, message=message))

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict in the ``{success, data}`` / ``{success, error}`` shape."""
        payload = self.model_dump(mode="json")
        if self.success:
            payload.pop("error", None)
        else:
            payload.pop("data", None)
        return payload
