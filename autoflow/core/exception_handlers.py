"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Domain errors keep their
error_code in the body so the dashboard can branch on it; framework errors
use the same {"error", "message", "details"} shape.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from autoflow.core.config import get_settings
from autoflow.domain.exceptions import AutoflowException

logger = logging.getLogger(__name__)

# Domain error_code -> HTTP status; codes not listed map to 400.
_ERROR_CODE_STATUS: dict[str, int] = {
    "RESOURCE_NOT_FOUND": 404,
    "VALIDATION_ERROR": 400,
    "CONDITION_SYNTAX_ERROR": 400,
    "WORKFLOW_INACTIVE": 409,
    "ACTION_EXECUTION_ERROR": 422,
    "RUN_FATAL_ERROR": 500,
}


def _error_body(error: str, message: Any, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": error, "message": message}
    if details is not None:
        body["details"] = details
    return body


def _status_for(exc: AutoflowException) -> int:
    """HTTP status for a domain exception."""
    return _ERROR_CODE_STATUS.get(exc.error_code, 400)


def _autoflow_exception_handler(
    request: Request, exc: AutoflowException
) -> JSONResponse:
    status = _status_for(exc)
    if status >= 500:
        logger.error(
            "%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message
        )
    return JSONResponse(
        status_code=status,
        content=jsonable_encoder(exc.to_dict()),
    )


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies and query params: 422 with pydantic's error list."""
    return JSONResponse(
        status_code=422,
        content=_error_body(
            "VALIDATION_ERROR",
            "Request validation failed",
            jsonable_encoder(exc.errors()),
        ),
    )


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Routing misses, missing org header, engine not started."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("HTTP_ERROR", exc.detail),
        headers=getattr(exc, "headers", None),
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; the exception text is exposed only in debug."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    detail: Any = str(exc) if get_settings().debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content=_error_body("INTERNAL_ERROR", detail),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Call once after creating the app.
    """
    app.add_exception_handler(AutoflowException, _autoflow_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
