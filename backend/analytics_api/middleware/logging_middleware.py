"""
Per-request access log.

Binds a request id into the structlog context so every log line emitted
while serving the request carries it, and returns it as X-Request-ID.
A well-formed incoming X-Request-ID (from a gateway or the dashboard) is
reused; otherwise a short random id is generated.
"""
import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger("analytics.api.access")

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# Query parameters that identify a vendor or person
SENSITIVE_PARAMS = {"vendor_tax_id", "vendortaxid", "tax_id", "user_id"}
QUIET_PATHS = {"/", "/health", "/metrics", "/docs", "/redoc", "/openapi.json"}


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER, "")
    if _REQUEST_ID_RE.match(incoming):
        return incoming
    return uuid.uuid4().hex[:8]


def _redacted(params) -> dict:
    return {k: ("[REDACTED]" if k.lower() in SENSITIVE_PARAMS else v) for k, v in params.items()}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log with status-aware levels and slow-request warnings."""

    SLOW_THRESHOLD_MS = 2000

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _request_id(request)
        started = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", duration_ms=self._elapsed(started), status=500)
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        fields = {"status": response.status_code, "duration_ms": self._elapsed(started)}
        if request.url.path not in QUIET_PATHS and request.query_params:
            fields["query_params"] = _redacted(request.query_params)

        if response.status_code >= 500:
            logger.error("request_completed", **fields)
        elif fields["duration_ms"] > self.SLOW_THRESHOLD_MS:
            logger.warning("slow_request", **fields)
        elif response.status_code >= 400:
            logger.warning("request_completed", **fields)
        elif request.url.path in QUIET_PATHS:
            logger.debug("request_completed", **fields)
        else:
            logger.info("request_completed", **fields)
        return response

    @staticmethod
    def _elapsed(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 1)
