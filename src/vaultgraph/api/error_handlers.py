"""Exception handlers that render every API failure as {error, message, detail}."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.service import NoteNotFoundError

logger = logging.getLogger(__name__)


class ErrorBody(BaseModel):
    """Error envelope shared by every endpoint."""
    error: str
    message: str
    detail: Optional[Dict[str, Any]] = None


# status -> (error code, fallback message)
ERROR_CODES: Dict[int, tuple] = {
    status.HTTP_400_BAD_REQUEST: ("validation_error", "Invalid request parameters"),
    status.HTTP_404_NOT_FOUND: ("not_found", "Resource not found"),
    status.HTTP_503_SERVICE_UNAVAILABLE: ("vault_unavailable", "Vault could not be read"),
    status.HTTP_500_INTERNAL_SERVER_ERROR: ("internal_error", "Internal server error"),
}


def error_body(status_code: int, detail: Any = None) -> ErrorBody:
    """Build the envelope from an HTTPException-style detail (str, dict or None)."""
    code, fallback = ERROR_CODES.get(
        status_code, ERROR_CODES[status.HTTP_500_INTERNAL_SERVER_ERROR]
    )
    if isinstance(detail, dict):
        return ErrorBody(
            error=detail.get("error", code),
            message=detail.get("message", fallback),
            detail=detail.get("detail"),
        )
    return ErrorBody(error=code, message=detail if isinstance(detail, str) and detail else fallback)


def _json(status_code: int, body: ErrorBody) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return _json(
        status.HTTP_400_BAD_REQUEST,
        error_body(status.HTTP_400_BAD_REQUEST, {"detail": {"errors": errors}}),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _json(exc.status_code, error_body(exc.status_code, exc.detail))


async def note_not_found_handler(request: Request, exc: NoteNotFoundError) -> JSONResponse:
    body = ErrorBody(error="note_not_found", message=str(exc), detail={"names": [exc.name]})
    return _json(status.HTTP_404_NOT_FOUND, body)


async def vault_error_handler(request: Request, exc: OSError) -> JSONResponse:
    logger.error("Vault read failed on %s: %s", request.url.path, exc)
    return _json(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        error_body(status.HTTP_503_SERVICE_UNAVAILABLE, f"Vault could not be read: {exc}"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach the envelope handlers to the application."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(NoteNotFoundError, note_not_found_handler)
    app.add_exception_handler(OSError, vault_error_handler)


__all__ = ["ErrorBody", "error_body", "register_error_handlers"]
