"""
Notes Summarizer - Response Envelope
======================================

Every response body, success or error, has the same outer shape:

    {"success": true,  "data": {...},  "metadata": {"timestamp": ..., "request_id": ...}}
    {"success": false, "error": {"code": ..., "message": ..., "details": ...},
     "metadata": {"timestamp": ..., "request_id": ..., "status_code": ...}}

The functions here are pure apart from reading the current request ID, so
route handlers and exception handlers build envelopes the same way.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from notes_summarizer.middleware.request_id import request_id_var


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return data


def format_success(data: Any = None, request_id: Optional[str] = None, **metadata: Any) -> Dict[str, Any]:
    return {
        "success": True,
        "data": _dump(data),
        "metadata": {
            "timestamp": _timestamp(),
            "request_id": request_id or request_id_var.get("") or None,
            **metadata,
        },
    }


def format_error(
    code: str,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or None,
        },
        "metadata": {
            "timestamp": _timestamp(),
            "request_id": request_id or request_id_var.get("") or None,
            "status_code": status_code,
        },
    }


def success_response(
    data: Any = None,
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
    **metadata: Any,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=format_success(data, **metadata),
        headers=headers,
    )


def error_response(
    code: str,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=format_error(code, message, status_code, details, request_id),
        headers=headers,
    )
