"""
Tests for general API functionality.
"""
import pytest

from analytics_api import dependencies
from analytics_api import main


class TestHealthCheck:
    """Tests for health check endpoint."""

    def test_health_check_connected(self, client, db_path, monkeypatch):
        """Health reports the invoice count when the database is reachable."""
        monkeypatch.setattr(dependencies, "DB_PATH", db_path)
        monkeypatch.setattr(main, "DB_PATH", db_path)
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"]["status"] == "connected"
        assert data["database"]["invoice_count"] == 8
        assert "version" in data

    def test_health_check_missing_database(self, client, tmp_path, monkeypatch):
        missing = tmp_path / "missing.db"
        monkeypatch.setattr(dependencies, "DB_PATH", missing)
        monkeypatch.setattr(main, "DB_PATH", missing)
        response = client.get("/health")
        assert response.status_code == 503
        assert response.json()["database"]["status"] == "not found"


class TestRoot:
    """Tests for root endpoint."""

    def test_root_returns_api_info(self, client):
        """Test root endpoint returns API info."""
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert "name" in data
        assert "version" in data
        assert "docs" in data
        assert "endpoints" in data

    def test_root_lists_endpoints(self, client):
        """Test root endpoint lists all available endpoints."""
        endpoints = client.get("/").json()["endpoints"]
        assert "performance_scorecard" in endpoints
        assert "risk_assessment" in endpoints
        assert "stats" in endpoints
        assert "chat_query" in endpoints


class TestMetrics:
    def test_metrics(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        data = response.json()
        assert "uptime_seconds" in data
        assert isinstance(data["cache"], dict)


class TestSecurityHeaders:
    def test_headers_present(self, client):
        response = client.get("/")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_request_id_assigned(self, client):
        first = client.get("/").headers["X-Request-ID"]
        second = client.get("/").headers["X-Request-ID"]
        assert len(first) == 8
        assert first != second

    def test_incoming_request_id_reused(self, client):
        response = client.get("/", headers={"X-Request-ID": "gw-abc123"})
        assert response.headers["X-Request-ID"] == "gw-abc123"

    def test_malformed_request_id_replaced(self, client):
        response = client.get("/", headers={"X-Request-ID": "bad id; drop"})
        assert response.headers["X-Request-ID"] != "bad id; drop"


class TestCORS:
    """Tests for CORS configuration."""

    def test_allowed_origin(self, client):
        response = client.get("/", headers={"Origin": "http://localhost:3000"})
        assert response.headers.get("access-control-allow-origin") == "http://localhost:3000"

    def test_unknown_origin_not_echoed(self, client):
        response = client.get("/", headers={"Origin": "http://evil.example"})
        assert "access-control-allow-origin" not in response.headers


class TestStats:
    """Tests for /stats and /invoice-trends."""

    def test_stats(self, client, base_url):
        response = client.get(f"{base_url}/stats")
        assert response.status_code == 200
        data = response.json()
        assert data["totalInvoices"] == 8
        assert data["totalSpend"] == 1_319_999
        assert data["vendorCount"] == 4
        assert data["pendingPayments"] == 2
        assert data["currentMonth"] == {"invoices": 0, "spend": 0}

    def test_invoice_trends(self, client, base_url):
        response = client.get(f"{base_url}/invoice-trends")
        assert response.status_code == 200
        trends = response.json()
        assert [t["month"] for t in trends][0] == "2024-12"
        assert len(trends) == 6
        assert trends[4] == {"month": "2025-04", "invoiceCount": 2, "totalSpend": 1_200_000}


class TestNotFound:
    @pytest.mark.parametrize("path", ["/api/v1/vendor-analytics/nope", "/api/v2/stats"])
    def test_unknown_paths(self, client, path):
        assert client.get(path).status_code == 404
