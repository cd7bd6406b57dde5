"""Shared JSON error bodies for route handlers."""

from __future__ import annotations

from typing import Any, Dict

from fastapi.responses import JSONResponse

NOT_FOUND_MESSAGE = "HS code not found"


def error_response(status_code: int, message: str, **payload: Any) -> JSONResponse:
    content: Dict[str, Any] = {**payload, "error": message}
    return JSONResponse(status_code=status_code, content=content)


def not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": NOT_FOUND_MESSAGE})
