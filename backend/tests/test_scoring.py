"""
Unit tests for the vendor scoring engine.

Covers the performance, payment reliability and risk scorecards, the risk
category boundaries and the zero-denominator defaults.
"""
import pytest

from analytics_api.models.aggregates import PaymentAggregate, RiskAggregate, VendorAggregate
from analytics_api.services.scoring import (
    ScoreResult,
    categorize_risk,
    reliability_from_terms,
    score_payment_reliability,
    score_performance,
    score_risk,
)


def make_vendor(**overrides) -> VendorAggregate:
    fields = dict(
        vendor_id="v1",
        vendor_name="Acme Supplies",
        vendor_tax_id="TX-001",
        invoice_count=45,
        total_spend=90000.0,
        avg_invoice_value=2000.0,
        first_invoice="2024-07-01",
        last_invoice="2025-06-01",
        active_months=8,
        avg_payment_terms=30.5,
    )
    fields.update(overrides)
    return VendorAggregate(**fields)


def make_payment(**overrides) -> PaymentAggregate:
    fields = dict(
        vendor_id="v1",
        vendor_name="Acme Supplies",
        payment_records=10,
        avg_payment_terms=30.0,
        avg_discount_rate=2.0,
        overdue_count=0,
        discount_eligible=0,
        potential_savings=0.0,
        earliest_due=None,
        latest_due=None,
    )
    fields.update(overrides)
    return PaymentAggregate(**fields)


def make_risk(**overrides) -> RiskAggregate:
    fields = dict(
        vendor_id="v1",
        vendor_name="Acme Supplies",
        vendor_tax_id="TX-001",
        total_invoices=10,
        total_exposure=0.0,
        avg_invoice_value=0.0,
        invoice_variability=0.0,
        late_invoices=0,
        overdue_payments=0,
        avg_payment_window=30.0,
        relationship_start=None,
        last_activity=None,
        active_months=6,
    )
    fields.update(overrides)
    return RiskAggregate(**fields)


class TestPerformanceScorecard:
    """Consistency, volume and payment-terms reliability."""

    def test_reference_vendor(self):
        """45 invoices over 8 of 12 months at 30.5-day terms."""
        score = score_performance(make_vendor(), window_months=12)
        assert score.sub_scores == {"consistency": 67, "volume": 90, "reliability": 100}
        assert score.overall == 86
        assert score.category is None

    def test_overall_is_mean_of_rounded_sub_scores(self):
        for vendor in (
            make_vendor(invoice_count=4, active_months=4, avg_payment_terms=37.5),
            make_vendor(invoice_count=1, active_months=1, avg_payment_terms=0),
            make_vendor(invoice_count=120, active_months=12, avg_payment_terms=90),
        ):
            score = score_performance(vendor, window_months=12)
            subs = score.sub_scores
            mean = (subs["consistency"] + subs["volume"] + subs["reliability"]) / 3
            assert abs(score.overall - mean) <= 0.5

    def test_volume_and_consistency_capped(self):
        score = score_performance(make_vendor(invoice_count=500, active_months=30), window_months=12)
        assert score.sub_scores["volume"] == 100
        assert score.sub_scores["consistency"] == 100

    def test_zero_window_gives_zero_consistency(self):
        score = score_performance(make_vendor(), window_months=0)
        assert score.sub_scores["consistency"] == 0

    def test_unknown_terms_score_neutral_50(self):
        score = score_performance(make_vendor(avg_payment_terms=0), window_months=12)
        assert score.sub_scores["reliability"] == 50

    def test_long_terms_floor_at_zero(self):
        score = score_performance(make_vendor(avg_payment_terms=200), window_months=12)
        assert score.sub_scores["reliability"] == 0

    def test_short_terms_reliability_exceeds_100(self):
        """Reliability has no upper clamp: 0.5-day terms score 129.5 -> 130.

        Kept as-is so scores stay comparable with existing dashboards.
        """
        assert reliability_from_terms(0.5) == pytest.approx(129.5)
        score = score_performance(make_vendor(avg_payment_terms=0.5), window_months=12)
        assert score.sub_scores["reliability"] == 130
        assert score.overall == 96

    def test_as_dict_shape(self):
        score = score_performance(make_vendor(), window_months=12)
        assert score.as_dict() == {"overall": 86, "consistency": 67, "volume": 90, "reliability": 100}


class TestPaymentReliabilityScorecard:
    """reliability = max(0, 100 - 2 * overdueRate)."""

    def test_no_overdue(self):
        score = score_payment_reliability(make_payment(overdue_count=0, payment_records=10))
        assert score.sub_scores["overdueRate"] == 0
        assert score.overall == 100

    def test_half_overdue_clamps_to_zero(self):
        score = score_payment_reliability(make_payment(overdue_count=5, payment_records=10))
        assert score.sub_scores["overdueRate"] == 50
        assert score.overall == 0

    def test_rates_rounded_to_two_decimals(self):
        score = score_payment_reliability(
            make_payment(payment_records=3, overdue_count=1, discount_eligible=2)
        )
        assert score.sub_scores["overdueRate"] == 33.33
        assert score.sub_scores["discountUtilization"] == 66.67
        assert score.overall == 33
        assert isinstance(score.overall, int)

    def test_zero_records_defaults(self):
        score = score_payment_reliability(
            make_payment(payment_records=0, overdue_count=0, discount_eligible=0)
        )
        assert score.sub_scores == {"overdueRate": 0, "discountUtilization": 0}
        assert score.overall == 100


class TestRiskScorecard:
    """Weighted risk: 0.3 exposure, 0.2 variability, 0.25 timeliness, 0.25 payment."""

    def test_high_risk_vendor(self):
        score = score_risk(make_risk(
            total_exposure=2_000_000,
            avg_invoice_value=1000,
            invoice_variability=2000,
            late_invoices=5,
            overdue_payments=0,
        ))
        assert score.sub_scores == {"exposure": 100, "variability": 100, "timeliness": 100, "payment": 0}
        assert score.overall == 75
        assert score.category == "High"

    def test_weighted_combination(self):
        score = score_risk(make_risk(
            total_invoices=4,
            total_exposure=10_000,
            avg_invoice_value=2500,
            invoice_variability=1290.994,
            late_invoices=1,
            overdue_payments=3,
        ))
        # 1*0.3 + 51.64*0.2 + 50*0.25 + 100*0.25 = 48.13
        assert score.sub_scores == {"exposure": 1, "variability": 52, "timeliness": 50, "payment": 100}
        assert score.overall == 48
        assert score.category == "Medium"

    def test_sub_risks_capped_before_weighting(self):
        score = score_risk(make_risk(
            total_invoices=1,
            total_exposure=50_000_000,
            avg_invoice_value=1,
            invoice_variability=1_000,
            late_invoices=1,
            overdue_payments=1,
        ))
        assert all(value == 100 for value in score.sub_scores.values())
        assert score.overall == 100

    def test_zero_invoices_no_division(self):
        score = score_risk(make_risk(total_invoices=0, late_invoices=0, overdue_payments=0))
        assert score.overall == 0
        assert score.category == "Low"

    def test_zero_average_gives_zero_variability(self):
        score = score_risk(make_risk(avg_invoice_value=0, invoice_variability=500))
        assert score.sub_scores["variability"] == 0

    def test_weights_sum_to_one(self):
        from analytics_api.config.constants import RISK_WEIGHTS
        assert sum(RISK_WEIGHTS.values()) == pytest.approx(1.0)


class TestRiskCategory:
    """Boundaries are exclusive: 70 is Medium, 40 is Low."""

    @pytest.mark.parametrize("overall,expected", [
        (0, "Low"),
        (40, "Low"),
        (41, "Medium"),
        (70, "Medium"),
        (71, "High"),
        (100, "High"),
    ])
    def test_boundaries(self, overall, expected):
        assert categorize_risk(overall) == expected


class TestPurity:
    def test_identical_input_identical_output(self):
        vendor, payment, risk = make_vendor(), make_payment(overdue_count=3), make_risk(total_exposure=123456)
        assert score_performance(vendor, 12) == score_performance(vendor, 12)
        assert score_payment_reliability(payment) == score_payment_reliability(payment)
        assert score_risk(risk) == score_risk(risk)

    def test_result_is_immutable(self):
        score = score_risk(make_risk())
        assert isinstance(score, ScoreResult)
        with pytest.raises(AttributeError):
            score.overall = 5
