"""
Unit tests for the report assembler.
"""
from datetime import datetime

from analytics_api.services.report import assemble, count_by, envelope, truncate


ROWS = [
    {"vendorName": "C", "riskCategory": "High"},
    {"vendorName": "A", "riskCategory": "Low"},
    {"vendorName": "B", "riskCategory": "High"},
]


class TestTruncate:
    def test_limit_keeps_order(self):
        assert truncate(ROWS, 2) == ROWS[:2]

    def test_limit_larger_than_input(self):
        assert truncate(ROWS, 50) == ROWS

    def test_non_positive_limit_is_empty(self):
        assert truncate(ROWS, 0) == []
        assert truncate(ROWS, -3) == []


class TestCountBy:
    def test_counts_lowercased_with_zero_fill(self):
        counts = count_by(ROWS, "riskCategory", ("High", "Medium", "Low"))
        assert counts == {"high": 2, "medium": 0, "low": 1}

    def test_callable_key(self):
        counts = count_by(ROWS, lambda row: row["vendorName"])
        assert counts == {"c": 1, "a": 1, "b": 1}


class TestAssemble:
    def test_envelope_shape(self):
        report = assemble(ROWS, 10, metadata={"timeframe": "12 months"})
        assert report["success"] is True
        assert report["data"] == ROWS
        assert report["metadata"]["timeframe"] == "12 months"
        assert report["metadata"]["totalVendors"] == 3
        datetime.fromisoformat(report["metadata"]["timestamp"])

    def test_distribution_counts_only_returned_rows(self):
        report = assemble(
            ROWS, 2,
            distribution=("riskDistribution", "riskCategory", ("High", "Medium", "Low")),
        )
        assert report["metadata"]["totalVendors"] == 2
        assert report["metadata"]["riskDistribution"] == {"high": 1, "medium": 0, "low": 1}

    def test_empty_input(self):
        report = assemble([], 10)
        assert report["data"] == []
        assert report["metadata"]["totalVendors"] == 0

    def test_does_not_mutate_metadata(self):
        metadata = {"timeframe": "24 months"}
        assemble(ROWS, 1, metadata=metadata)
        assert metadata == {"timeframe": "24 months"}


class TestEnvelope:
    def test_single_object(self):
        report = envelope({"totalVendors": 3}, {"timeframe": "12 months"})
        assert report["success"] is True
        assert report["data"] == {"totalVendors": 3}
        assert report["metadata"]["timeframe"] == "12 months"
        assert "timestamp" in report["metadata"]
