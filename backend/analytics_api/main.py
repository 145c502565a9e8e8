"""
Vendor Analytics API

REST API for invoice/vendor analytics dashboards, vendor scorecards and
the natural-language-to-SQL assistant.

Run with: uvicorn analytics_api.main:app --port 8001 --reload
"""
import os
import sqlite3
import time as _time_module
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

# Configure structured logging FIRST (before any logger calls)
from .middleware.structlog_config import configure as configure_logging
configure_logging()

import structlog
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .cache import external_cache
from .dependencies import DB_PATH, verify_database_exists
from .middleware import RequestLoggingMiddleware, register_error_handlers
from .rate_limit import limiter
from .routers import chat_router, stats_router, vendor_analytics_router

logger = structlog.get_logger("analytics.api")

# Track server start time for uptime reporting
_server_start_time = _time_module.time()

REQUIRED_TABLES = ("vendors", "invoices", "payments", "line_items")


def _startup_checks():
    """Verify the database and the tables the aggregate queries read."""
    if not DB_PATH.exists():
        logger.warning("startup_check_failed", check="database_exists", path=str(DB_PATH))
        return

    try:
        conn = sqlite3.connect(str(DB_PATH), timeout=10)
        try:
            rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.warning("startup_check_warning", issue=f"database error: {e}")
        return

    present = {row[0] for row in rows}
    missing = [t for t in REQUIRED_TABLES if t not in present]
    if missing:
        logger.warning("startup_check_warning", issue="missing tables", tables=missing)
    else:
        logger.info("startup_checks_passed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: run checks."""
    _startup_checks()
    yield
    logger.info("Shutting down.")


# API metadata
API_TITLE = "Vendor Analytics API"
API_DESCRIPTION = """
Invoice and vendor analytics over the accounts-payable dataset.

### Core Endpoints

- **Vendor analytics** - Performance scorecards, payment reliability,
  spending trends, risk assessment, category analysis
- **Stats** - Dashboard totals and monthly invoice trends
- **Chat** - Natural-language questions answered with SQL
"""
API_VERSION = "1.0.0"

_docs_enabled = os.environ.get("ENABLE_DOCS", "true").lower() == "true"
app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
    lifespan=lifespan,
)

# Register global error handlers
register_error_handlers(app)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Request logging middleware (must be added before CORS/GZip so it wraps them)
app.add_middleware(RequestLoggingMiddleware)

cors_origins = os.environ.get(
    "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
).split(",")
if "*" in cors_origins:
    logger.warning("Wildcard CORS origin rejected for security; falling back to localhost defaults")
    cors_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response

# GZip compression for responses > 1KB
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(vendor_analytics_router, prefix="/api/v1")
app.include_router(stats_router, prefix="/api/v1")
app.include_router(chat_router, prefix="/api/v1")


@app.get("/", tags=["root"])
async def root():
    """API root - returns basic info and links."""
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "docs": "/docs",
        "endpoints": {
            "stats": "/api/v1/stats",
            "invoice_trends": "/api/v1/invoice-trends",
            "performance_scorecard": "/api/v1/vendor-analytics/performance-scorecard",
            "payment_reliability": "/api/v1/vendor-analytics/payment-reliability",
            "spending_trends": "/api/v1/vendor-analytics/spending-trends",
            "risk_assessment": "/api/v1/vendor-analytics/risk-assessment",
            "category_analysis": "/api/v1/vendor-analytics/category-analysis",
            "vendor_summary": "/api/v1/vendor-analytics/summary",
            "chat_query": "/api/v1/chat/query",
            "chat_suggestions": "/api/v1/chat/suggestions",
            "chat_health": "/api/v1/chat/health",
        },
    }


@app.get("/health", tags=["root"])
def health_check():
    """Health check endpoint with database and uptime status."""
    uptime_seconds = round(_time_module.time() - _server_start_time)

    db_info = {"status": "not found"}
    db_reachable = False
    if verify_database_exists():
        try:
            conn = sqlite3.connect(str(DB_PATH), timeout=5)
            try:
                invoice_count = conn.execute("SELECT COUNT(*) FROM invoices").fetchone()[0]
            finally:
                conn.close()
            db_info = {
                "status": "connected",
                "size_mb": round(DB_PATH.stat().st_size / (1024 * 1024), 1),
                "invoice_count": invoice_count,
            }
            db_reachable = True
        except sqlite3.Error:
            db_info = {"status": "error"}

    return JSONResponse(
        status_code=200 if db_reachable else 503,
        content={
            "status": "healthy" if db_reachable else "unavailable",
            "version": API_VERSION,
            "database": db_info,
            "uptime_seconds": uptime_seconds,
        },
    )


@app.get("/metrics", tags=["root"])
async def metrics():
    """Application metrics for monitoring."""
    return {
        "uptime_seconds": round(_time_module.time() - _server_start_time),
        "cache": external_cache.stats(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
