from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from linkedin_import.logging_context import get_request_id


def _request_id(request: Request) -> str | None:
    value = getattr(request.state, "request_id", None)
    if isinstance(value, str) and value:
        return value
    return get_request_id()


def _meta(request: Request) -> dict[str, Any]:
    return {"request_id": _request_id(request)}


def success_payload(request: Request, **data: Any) -> dict[str, Any]:
    return {"success": True, **data, "meta": _meta(request)}


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    detail: Any | None = None,
    hint: str | None = None,
) -> JSONResponse:
    payload = {
        "error": code,
        "message": message,
        "detail": detail,
        "status": status_code,
        "hint": hint,
        "meta": _meta(request),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))
