"""Global exception handlers for consistent error envelopes.

Every failure leaves the service as::

    {"success": false, "message": "...", "error": "..."}

Usage:
    from libs.common.error_handler import add_exception_handlers

    app = FastAPI()
    add_exception_handlers(app)
"""

from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from libs.common.logging import get_logger

logger = get_logger(__name__)


def error_response(
    status_code: int,
    message: str,
    error: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    """Build the standard failure envelope."""
    content: dict[str, Any] = {"success": False, "message": message}
    if error:
        content["error"] = error
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return "; ".join(parts) or "Invalid request"


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(
        exc.status_code,
        str(exc.detail),
        error="HTTP_ERROR",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        _format_validation_errors(exc),
        error="VALIDATION_ERROR",
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        error="INTERNAL_ERROR",
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Register the shared handlers on an app."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
