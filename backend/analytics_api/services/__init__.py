"""
Service layer for the vendor analytics API.

Domain services own query orchestration and response shaping; the scoring,
trend and report modules are pure transforms. Routers stay thin:
parse request -> call service -> return response.
"""
from .query_builder import QueryBuilder
from .aggregate_source import AggregateSource
from .vendor_analytics_service import vendor_analytics_service
from .stats_service import stats_service

__all__ = [
    "QueryBuilder",
    "AggregateSource",
    "vendor_analytics_service",
    "stats_service",
]
