"""API response envelope.

Every endpoint answers:
{
    "code": 0,           // 0 on success, the AppError code otherwise
    "message": "success",
    "data": { ... },     // error details (issues, block reasons) on failure
    "timestamp": "...",
    "request_id": "..."  // same id RequestLogMiddleware logs
}
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request

from src.pm_common.datetime_utils import utc_now
from src.pm_common.errors import AppError


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=_new_request_id)


def request_id_of(request: Request | None) -> str:
    if request is None:
        return _new_request_id()
    return getattr(request.state, "request_id", None) or _new_request_id()


def success_response(data: Any = None, request: Request | None = None) -> ApiResponse:
    return ApiResponse(data=data, request_id=request_id_of(request))


def error_response(exc: AppError, request: Request | None = None) -> ApiResponse:
    details = getattr(exc, "issues", None) or getattr(exc, "reasons", None)
    return ApiResponse(
        code=exc.code,
        message=exc.message,
        data=details,
        request_id=request_id_of(request),
    )
