"""
Pytest fixtures for API and data-source tests.

A small SQLite dataset is seeded once per session. All dates are relative to
AS_OF (2025-06-15), which the aggregate source uses as "today".
"""
import os
import sqlite3
from datetime import date

import httpx
import pytest

# Rate limits would make repeated chat calls flaky
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from fastapi.testclient import TestClient  # noqa: E402

from analytics_api.dependencies import get_aggregate_source, get_sql_assistant  # noqa: E402
from analytics_api.main import app  # noqa: E402
from analytics_api.services.aggregate_source import AggregateSource  # noqa: E402
from analytics_api.services.retry import RetryPolicy  # noqa: E402
from analytics_api.services.sql_assistant import SqlAssistantClient  # noqa: E402

AS_OF = date(2025, 6, 15)

SCHEMA = """
CREATE TABLE vendors (
    id TEXT PRIMARY KEY,
    vendor_name TEXT NOT NULL,
    vendor_tax_id TEXT
);
CREATE TABLE invoices (
    id TEXT PRIMARY KEY,
    vendor_id TEXT REFERENCES vendors(id),
    invoice_date TEXT,
    delivery_date TEXT,
    invoice_total REAL
);
CREATE TABLE payments (
    id TEXT PRIMARY KEY,
    invoice_id TEXT REFERENCES invoices(id),
    due_date TEXT,
    net_days INTEGER,
    discount_percentage REAL,
    discount_due_date TEXT,
    discounted_total REAL
);
CREATE TABLE line_items (
    id TEXT PRIMARY KEY,
    invoice_id TEXT REFERENCES invoices(id),
    description TEXT,
    quantity REAL,
    unit_price REAL,
    total_price REAL
);
"""

VENDORS = [
    ("v1", "Acme Supplies", "TX-001"),
    ("v2", "Birch Logistics", "TX-002"),
    ("v3", "Cobalt Services", None),
    ("v4", "Dormant Co", "TX-004"),
]

INVOICES = [
    # Acme: four months, one invoiced 49 days after delivery
    ("i1", "v1", "2025-01-10", "2025-01-05", 1000.0),
    ("i2", "v1", "2025-02-10", "2025-02-05", 2000.0),
    ("i3", "v1", "2025-03-10", "2025-01-20", 3000.0),
    ("i4", "v1", "2025-05-10", "2025-05-05", 4000.0),
    # Birch: two large invoices in April
    ("i5", "v2", "2025-04-01", "2025-04-01", 500000.0),
    ("i6", "v2", "2025-04-20", "2025-04-20", 700000.0),
    # Cobalt: one invoice, no payment
    ("i7", "v3", "2024-12-05", "2024-12-01", 10000.0),
    # Dormant: outside every window
    ("i8", "v4", "2023-01-01", "2023-01-01", 99999.0),
]

PAYMENTS = [
    ("p1", "i1", "2025-02-09", 30, 2.0, "2025-01-20", 980.0),
    ("p2", "i2", "2025-03-12", 30, 2.0, "2025-02-20", 1960.0),
    ("p3", "i3", "2025-04-09", 30, 2.0, "2025-03-20", 2940.0),
    ("p4", "i4", "2025-07-09", 60, 1.5, "2025-06-20", 3940.0),
    ("p5", "i5", "2025-05-01", 30, None, None, None),
    ("p6", "i6", "2025-07-20", 90, None, None, None),
]

LINE_ITEMS = [
    ("l1", "i1", "Paper", 10, 50.0, 500.0),
    ("l2", "i1", "Toner", 2, 250.0, 500.0),
    ("l3", "i2", "Paper", 20, 50.0, 1000.0),
    ("l4", "i2", None, 1, 500.0, 500.0),
    ("l5", "i5", "Freight", 1, 500000.0, 500000.0),
]


def seed_database(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA)
    conn.executemany("INSERT INTO vendors VALUES (?, ?, ?)", VENDORS)
    conn.executemany("INSERT INTO invoices VALUES (?, ?, ?, ?, ?)", INVOICES)
    conn.executemany("INSERT INTO payments VALUES (?, ?, ?, ?, ?, ?, ?)", PAYMENTS)
    conn.executemany("INSERT INTO line_items VALUES (?, ?, ?, ?, ?, ?)", LINE_ITEMS)
    conn.commit()


@pytest.fixture(scope="session")
def db_path(tmp_path_factory):
    """Path to the seeded SQLite database."""
    path = tmp_path_factory.mktemp("data") / "analytics.db"
    conn = sqlite3.connect(str(path))
    seed_database(conn)
    conn.close()
    return path


@pytest.fixture
def source(db_path):
    """Aggregate source over the seeded database, pinned to AS_OF."""
    conn = sqlite3.connect(str(db_path))
    yield AggregateSource(conn, as_of=AS_OF, timeout=5)
    conn.close()


@pytest.fixture
def empty_db_path(tmp_path):
    """Path to a database with the schema but no rows."""
    path = tmp_path / "empty.db"
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA)
    conn.close()
    return path


@pytest.fixture
def empty_source(empty_db_path):
    """Aggregate source over an empty schema."""
    conn = sqlite3.connect(str(empty_db_path))
    yield AggregateSource(conn, as_of=AS_OF, timeout=5)
    conn.close()


class FakeAssistant:
    """Scripted stand-in for the SQL assistant service."""

    def __init__(self):
        self.healthy = True
        self.requests: list[httpx.Request] = []
        self.query_status = 200
        # path -> (status, json body) returned instead of the scripted answer
        self.failures: dict[str, tuple[int, dict]] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.failures:
            status, body = self.failures[path]
            return httpx.Response(status, json=body)
        if path == "/health":
            if not self.healthy:
                return httpx.Response(503, json={"error": "model not loaded"})
            return httpx.Response(200, json={"status": "healthy", "services": {"llm": True, "db": True}})
        if path == "/query":
            if self.query_status != 200:
                return httpx.Response(self.query_status, json={"error": "bad question"})
            return httpx.Response(200, json={
                "success": True,
                "question": "top vendors",
                "sql_query": "SELECT vendor_name FROM vendors LIMIT 10",
                "explanation": "Lists vendors.",
                "results": {"rows": [["Acme Supplies"]]},
            })
        if path == "/schema":
            return httpx.Response(200, json={"success": True, "tables": ["vendors", "invoices"]})
        if path == "/validate":
            return httpx.Response(200, json={"valid": True, "message": "ok", "query": "SELECT 1"})
        if path == "/explain":
            return httpx.Response(200, json={"explanation": "Selects one.", "sql": "SELECT 1"})
        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def fake_assistant():
    return FakeAssistant()


@pytest.fixture
def assistant_client(fake_assistant):
    """SqlAssistantClient wired to the fake service, with no real sleeping."""
    http_client = httpx.Client(
        transport=httpx.MockTransport(fake_assistant.handler),
        base_url="http://assistant.test",
    )
    client = SqlAssistantClient(
        "http://assistant.test",
        timeout=5,
        retry_policy=RetryPolicy(attempts=3, delay=0),
        http_client=http_client,
        sleep=lambda _: None,
    )
    yield client
    http_client.close()


@pytest.fixture
def client(db_path, assistant_client):
    """Test client with the data source and assistant overridden."""

    def override_source():
        conn = sqlite3.connect(str(db_path), check_same_thread=False)
        try:
            yield AggregateSource(conn, as_of=AS_OF, timeout=5)
        finally:
            conn.close()

    app.dependency_overrides[get_aggregate_source] = override_source
    app.dependency_overrides[get_sql_assistant] = lambda: assistant_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="module")
def base_url():
    """Base URL for API v1 endpoints."""
    return "/api/v1"
