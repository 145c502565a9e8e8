"""
Client for the external natural-language-to-SQL assistant.

The assistant turns a question into SQL, optionally runs it and explains it.
Every call goes through the retry helper; failures surface as
SqlAssistantError carrying the upstream status code where there is one.
"""
from __future__ import annotations

import time
from typing import Any, Callable

import httpx
import structlog

from ..cache import external_cache
from ..dependencies import (
    SQL_ASSISTANT_RETRY_ATTEMPTS,
    SQL_ASSISTANT_RETRY_DELAY,
    SQL_ASSISTANT_TIMEOUT,
    SQL_ASSISTANT_URL,
)
from ..middleware.error_handler import SqlAssistantError
from .retry import RetryPolicy, call_with_retry

logger = structlog.get_logger("analytics.services.sql_assistant")

SCHEMA_CACHE = "sql_assistant_schema"
SCHEMA_CACHE_TTL = 300

# Availability checks make a single attempt
AVAILABILITY_POLICY = RetryPolicy(attempts=1, delay=0)


class SqlAssistantClient:
    """HTTP proxy to the SQL assistant service."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        retry_policy: RetryPolicy = RetryPolicy(),
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_policy = retry_policy
        self._sleep = sleep
        self._client = http_client or httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    # --- Transport ---

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: dict | None = None,
        policy: RetryPolicy | None = None,
    ) -> Any:
        def send() -> Any:
            response = self._client.request(method, endpoint, json=json, params=params)
            response.raise_for_status()
            return response.json()

        return call_with_retry(
            send,
            policy or self.retry_policy,
            sleep=self._sleep,
            operation=f"{method} {endpoint}",
        )

    def _call(self, context: str, method: str, endpoint: str, **kwargs) -> Any:
        try:
            return self._request(method, endpoint, **kwargs)
        except httpx.HTTPStatusError as exc:
            raise self._status_error(exc, context) from exc
        except httpx.TransportError as exc:
            logger.error("sql_assistant_unreachable", endpoint=endpoint, error=str(exc))
            raise SqlAssistantError(f"{context}: Network error - {exc}", status_code=503) from exc
        except ValueError as exc:
            # Body was not JSON
            raise SqlAssistantError(f"{context}: invalid response - {exc}", status_code=502) from exc

    @staticmethod
    def _status_error(exc: httpx.HTTPStatusError, context: str) -> SqlAssistantError:
        response = exc.response
        detail = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("error") or body.get("message") or body.get("detail")
        if not detail:
            detail = f"HTTP {response.status_code} {response.reason_phrase}"
        logger.error(
            "sql_assistant_error",
            status=response.status_code,
            context=context,
            detail=str(detail),
        )
        return SqlAssistantError(f"{context}: {detail}", status_code=response.status_code)

    # --- Operations ---

    def process_query(self, request: dict) -> dict:
        """Translate (and by default run) a natural-language question."""
        question = request.get("question", "")
        logger.info("sql_assistant_query", question=question[:100])
        result = self._call("Query processing failed", "POST", "/query", json=request)
        logger.info(
            "sql_assistant_query_done",
            has_sql=bool(result.get("sql_query")),
            has_results=bool(result.get("results")),
            success=result.get("success"),
        )
        return result

    def process_batch(self, requests: list[dict]) -> list[dict]:
        """Process questions one after another; the first failure aborts the batch."""
        logger.info("sql_assistant_batch", size=len(requests))
        return [self.process_query(request) for request in requests]

    def get_schema(self, include_sample_data: bool = False, refresh: bool = False) -> dict:
        """Schema description used as assistant context (cached briefly).

        ``refresh`` drops every cached schema before fetching.
        """
        if refresh:
            external_cache.invalidate(SCHEMA_CACHE)
        return external_cache.get_or_load(
            SCHEMA_CACHE,
            include_sample_data,
            lambda: self._call(
                "Schema retrieval failed",
                "GET",
                "/schema",
                params={"include_sample_data": str(include_sample_data).lower()},
            ),
            ttl=SCHEMA_CACHE_TTL,
        )

    def validate_query(self, sql_query: str) -> dict:
        logger.info("sql_assistant_validate", sql=sql_query[:100])
        return self._call("Query validation failed", "POST", "/validate", json={"sql_query": sql_query})

    def explain_query(self, sql: str) -> dict:
        logger.info("sql_assistant_explain", sql=sql[:100])
        return self._call("Query explanation failed", "POST", "/explain", json={"sql": sql})

    def health_check(self, *, retry: bool = True) -> dict:
        policy = None if retry else AVAILABILITY_POLICY
        return self._call("Health check failed", "GET", "/health", policy=policy)

    def is_available(self) -> bool:
        """True when the health endpoint answers on the first attempt."""
        try:
            self.health_check(retry=False)
        except SqlAssistantError:
            return False
        return True

    def get_config(self) -> dict:
        return {
            "baseUrl": self.base_url,
            "timeout": self.timeout,
            "retryAttempts": self.retry_policy.attempts,
            "retryDelay": self.retry_policy.delay,
        }


# Shared client for router use
sql_assistant = SqlAssistantClient(
    SQL_ASSISTANT_URL,
    timeout=SQL_ASSISTANT_TIMEOUT,
    retry_policy=RetryPolicy(attempts=SQL_ASSISTANT_RETRY_ATTEMPTS, delay=SQL_ASSISTANT_RETRY_DELAY),
)
