from __future__ import annotations

from typing import Any, Dict, Generic, Optional, TypeVar

from flask import has_request_context, request
from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ApiError(BaseModel):
    """Error payload. `details` carries at most the offending field name."""

    code: str = Field(default="error")
    message: str
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class ApiMeta(BaseModel):
    """Echoed request id plus paging info for list responses."""

    request_id: Optional[str] = None
    count: Optional[int] = None
    offset: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope for every /api/v1 response."""

    ok: bool
    data: Optional[T] = None
    error: Optional[ApiError] = None
    meta: ApiMeta = Field(default_factory=ApiMeta)

    model_config = ConfigDict(extra="ignore")


def request_meta(**extra: Any) -> ApiMeta:
    """Meta for the current request; `X-Request-ID` is echoed back when sent."""

    request_id = request.headers.get("X-Request-ID") if has_request_context() else None
    return ApiMeta(request_id=request_id, **extra)


def ok(data: T = None, *, meta: Optional[ApiMeta] = None) -> Dict[str, Any]:
    payload = ApiResponse[Any](ok=True, data=data, error=None, meta=meta or request_meta())
    return payload.model_dump(mode="json")


def fail(
    message: str,
    *,
    code: str = "error",
    details: Optional[Dict[str, Any]] = None,
    meta: Optional[ApiMeta] = None,
) -> Dict[str, Any]:
    payload = ApiResponse[None](
        ok=False,
        data=None,
        error=ApiError(code=code, message=message, details=details),
        meta=meta or request_meta(),
    )
    return payload.model_dump(mode="json")
