"""API router proxying natural-language questions to the SQL assistant."""
import time

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from ..dependencies import get_sql_assistant
from ..middleware.error_handler import SqlAssistantError
from ..models.chat import BatchQueryRequest, ChatQueryRequest, ExplainSqlRequest, ValidateSqlRequest
from ..rate_limit import ASSISTANT_RATE_LIMIT, limiter
from ..services.report import utc_timestamp
from ..services.sql_assistant import SqlAssistantClient

router = APIRouter(prefix="/chat", tags=["chat"])

SUGGESTED_QUESTIONS = [
    {
        "category": "Vendor Analysis",
        "questions": [
            "Show me the top 10 vendors by total spending",
            "Which vendors have we paid the most this year?",
            "What is the average invoice amount by vendor?",
            "Show me vendors with overdue payments",
        ],
    },
    {
        "category": "Invoice Trends",
        "questions": [
            "Show monthly invoice trends for the last 12 months",
            "What is our total spending this quarter?",
            "How many invoices were processed last month?",
            "Show me the largest invoices from this year",
        ],
    },
    {
        "category": "Payment Analysis",
        "questions": [
            "Show me all overdue invoices",
            "What are our payment terms by vendor?",
            "Show invoices due in the next 30 days",
            "What is our average payment cycle time?",
        ],
    },
    {
        "category": "Financial Insights",
        "questions": [
            "What is our total accounts payable?",
            "What are our top expense categories?",
            "Show me year-over-year spending comparison",
        ],
    },
]


def _require_available(assistant: SqlAssistantClient) -> None:
    if not assistant.is_available():
        raise SqlAssistantError(
            "AI service is currently unavailable. Please try again later.",
            status_code=503,
        )


@router.post("/query")
@limiter.limit(ASSISTANT_RATE_LIMIT)
def process_query(
    request: Request,
    body: ChatQueryRequest,
    assistant: SqlAssistantClient = Depends(get_sql_assistant),
):
    """
    Translate a question into SQL and (by default) run it.

    Returns the assistant's `sql_query`, `explanation` and `results`.
    """
    _require_available(assistant)
    start = time.perf_counter()
    result = assistant.process_query(body.model_dump())
    processing_ms = round((time.perf_counter() - start) * 1000, 1)

    metadata = dict(result.get("metadata") or {})
    metadata["processing_time_ms"] = processing_ms
    return {
        **result,
        "success": result.get("success", True),
        "question": body.question,
        "metadata": metadata,
        "timestamp": utc_timestamp(),
    }


@router.post("/batch")
@limiter.limit(ASSISTANT_RATE_LIMIT)
def process_batch(
    request: Request,
    body: BatchQueryRequest,
    assistant: SqlAssistantClient = Depends(get_sql_assistant),
):
    """Process up to 10 questions sequentially."""
    results = assistant.process_batch([q.model_dump() for q in body.queries])
    return {
        "success": True,
        "results": results,
        "batch_size": len(body.queries),
        "timestamp": utc_timestamp(),
    }


@router.get("/schema")
def get_schema(
    include_sample_data: bool = Query(False),
    refresh: bool = Query(False, description="Bypass the cached schema"),
    assistant: SqlAssistantClient = Depends(get_sql_assistant),
):
    """Database schema description the assistant works from."""
    _require_available(assistant)
    schema = assistant.get_schema(include_sample_data, refresh=refresh)
    return {**schema, "timestamp": utc_timestamp()}


@router.post("/validate")
def validate_query(
    body: ValidateSqlRequest,
    assistant: SqlAssistantClient = Depends(get_sql_assistant),
):
    """Check SQL syntax and safety with the assistant."""
    try:
        result = assistant.validate_query(body.sql_query)
    except SqlAssistantError as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "valid": False,
                "message": exc.message,
                "query": body.sql_query,
                "timestamp": utc_timestamp(),
            },
        )
    return {**result, "timestamp": utc_timestamp()}


@router.post("/explain")
def explain_query(
    body: ExplainSqlRequest,
    assistant: SqlAssistantClient = Depends(get_sql_assistant),
):
    """Plain-language explanation of a SQL statement."""
    return {**assistant.explain_query(body.sql), "timestamp": utc_timestamp()}


@router.get("/health")
def get_health(assistant: SqlAssistantClient = Depends(get_sql_assistant)):
    """Assistant health; 503 when it cannot be reached."""
    try:
        result = assistant.health_check()
    except SqlAssistantError as exc:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "services": {},
                "error": exc.message,
                "timestamp": utc_timestamp(),
            },
        )
    return {**result, "timestamp": utc_timestamp()}


@router.get("/suggestions")
def get_suggestions():
    """Suggested starter questions grouped by topic."""
    return {"success": True, "suggestions": SUGGESTED_QUESTIONS, "timestamp": utc_timestamp()}


@router.get("/config")
def get_config(assistant: SqlAssistantClient = Depends(get_sql_assistant)):
    """Client configuration plus current availability."""
    return {
        "success": True,
        "config": {**assistant.get_config(), "serviceAvailable": assistant.is_available()},
        "timestamp": utc_timestamp(),
    }
