"""Database connection, external clients and common dependencies for the API."""
import os
import sqlite3
from pathlib import Path

from .middleware.error_handler import DataSourceUnavailable

# Database path - configurable via env var, defaults to analytics.db next to the package
DB_PATH = Path(os.environ.get("DATABASE_PATH", str(Path(__file__).parent.parent / "analytics.db")))

# Query timeout in seconds (configurable via environment variable)
DB_QUERY_TIMEOUT = int(os.environ.get("DB_QUERY_TIMEOUT", "30"))

# Natural-language-to-SQL assistant service
SQL_ASSISTANT_URL = os.environ.get("SQL_ASSISTANT_URL", "http://localhost:8000")
SQL_ASSISTANT_TIMEOUT = float(os.environ.get("SQL_ASSISTANT_TIMEOUT", "30"))
SQL_ASSISTANT_RETRY_ATTEMPTS = int(os.environ.get("SQL_ASSISTANT_RETRY_ATTEMPTS", "3"))
SQL_ASSISTANT_RETRY_DELAY = float(os.environ.get("SQL_ASSISTANT_RETRY_DELAY", "1.0"))


def get_db_connection() -> sqlite3.Connection:
    """Create a database connection with row factory and timeout.

    The connection is opened by a dependency and used by the handler, which
    FastAPI may run on a different threadpool thread.
    """
    conn = sqlite3.connect(str(DB_PATH), timeout=DB_QUERY_TIMEOUT, check_same_thread=False)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA busy_timeout = {DB_QUERY_TIMEOUT * 1000}")
        # WAL mode allows concurrent readers while one writer is active
        conn.execute("PRAGMA journal_mode = WAL")
    except sqlite3.Error:
        conn.close()
        raise
    return conn


def get_aggregate_source():
    """FastAPI dependency yielding a request-scoped aggregate source."""
    from .services.aggregate_source import AggregateSource

    try:
        conn = get_db_connection()
    except sqlite3.Error as exc:
        raise DataSourceUnavailable(f"Database unavailable: {exc}") from exc
    try:
        yield AggregateSource(conn, timeout=DB_QUERY_TIMEOUT)
    finally:
        conn.close()


def get_sql_assistant():
    """FastAPI dependency returning the shared assistant client."""
    from .services.sql_assistant import sql_assistant

    return sql_assistant


def verify_database_exists() -> bool:
    """Check if the database file exists."""
    return DB_PATH.exists()
