"""Middleware and error handling for the vendor analytics API."""
from .logging_middleware import RequestLoggingMiddleware
from .error_handler import DataSourceUnavailable, DomainError, SqlAssistantError, register_error_handlers

__all__ = [
    "RequestLoggingMiddleware",
    "register_error_handlers",
    "DomainError",
    "DataSourceUnavailable",
    "SqlAssistantError",
]
