"""Response envelope shared by every /api route.

Success: {"data": ..., "meta": {...}}
Error:   {"data": null, "error": {"status", "message"[, "details"]}, "meta": {...}}
"""

from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel


class Meta(BaseModel):
    request_id: str
    warnings: list[str]


class ErrorInfo(BaseModel):
    status: int
    message: str
    details: Optional[Any] = None


class Envelope(BaseModel):
    data: Any
    meta: Meta
    error: Optional[ErrorInfo] = None


def meta(request_id: Optional[str] = None, warnings: Optional[list[str]] = None, **extra: Any) -> dict:
    body = {
        "request_id": request_id or f"req_{uuid4().hex}",
        "warnings": warnings or [],
    }
    body.update(extra)
    return body


def ok(data: Any, **extra: Any) -> dict:
    return {"data": data, "meta": meta(**extra)}


def error_body(status: int, message: str, details: Any = None) -> dict:
    error: dict[str, Any] = {"status": status, "message": message}
    if details is not None:
        error["details"] = details
    return {"data": None, "error": error, "meta": meta()}
