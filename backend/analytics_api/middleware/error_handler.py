"""
Global error handlers for the vendor analytics API.

Translates exceptions into the `{success: false, error, timestamp}` envelope.
Unhandled errors never expose internal details to clients.
"""
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger("analytics.api.errors")


class DomainError(Exception):
    """Base class for domain-level errors."""
    status_code: int = 400
    error_code: str = "DOMAIN_ERROR"
    retryable: bool = False

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DataSourceUnavailable(DomainError):
    """Aggregate fetch failed or exceeded its deadline.

    The whole request is aborted; no partial scorecards are returned.
    """
    status_code = 500
    error_code = "DATA_SOURCE_UNAVAILABLE"
    retryable = True


class SqlAssistantError(DomainError):
    """The natural-language-to-SQL service failed or is unreachable."""
    status_code = 500
    error_code = "SQL_ASSISTANT_ERROR"

    def __init__(self, message: str, status_code: int | None = None, details: dict | None = None):
        super().__init__(message, details)
        if status_code is not None:
            self.status_code = status_code


def error_body(message: str, code: str | None = None, **extra) -> dict:
    """Build the failure envelope, stamped at response-build time."""
    body = {
        "success": False,
        "error": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if code:
        body["code"] = code
    body.update(extra)
    return body


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "domain_error",
            error_code=exc.error_code,
            error=exc.message,
            path=request.url.path,
        )
        extra = {"details": exc.details} if exc.details else {}
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.error_code, **extra),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_error",
            error_type=type(exc).__name__,
            error=str(exc),
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content=error_body("An unexpected error occurred.", "INTERNAL_ERROR"),
        )
