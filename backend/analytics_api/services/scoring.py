"""
Vendor scoring engine.

Three independent scorecards, each a pure function of one aggregate record:

- performance: consistency, volume and payment-terms reliability (higher = better)
- payment reliability: overdue rate and discount utilization (higher = better)
- risk: exposure, variability, timeliness and payment risk (higher = riskier)

Every ratio branches on a zero denominator and substitutes a default, so no
scorecard produces NaN or Infinity. Scores are computed per request and are
never cached.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from ..config.constants import (
    DEFAULT_RELIABILITY_SCORE,
    EXPOSURE_REFERENCE_AMOUNT,
    OVERDUE_PENALTY_FACTOR,
    PAYMENT_RISK_FACTOR,
    RISK_CATEGORY_THRESHOLDS,
    RISK_WEIGHTS,
    TARGET_PAYMENT_TERMS_DAYS,
    TIMELINESS_RISK_FACTOR,
    VOLUME_REFERENCE_INVOICES,
)
from ..models.aggregates import PaymentAggregate, RiskAggregate, VendorAggregate
from .normalizer import normalize, round_half_up, safe_rate


@dataclass(frozen=True)
class ScoreResult:
    """Named sub-scores, one overall score and an optional category label."""
    overall: int
    sub_scores: dict[str, float] = field(default_factory=dict)
    category: str | None = None

    def as_dict(self) -> dict:
        return {"overall": self.overall, **self.sub_scores}


def reliability_from_terms(avg_payment_terms: float) -> float:
    """Payment-terms heuristic: 30 days scores 100, each extra day costs a point.

    Unknown terms (0 or negative) score a neutral 50. Terms shorter than
    30 days push the score above 100; it is not capped.
    """
    if avg_payment_terms > 0:
        return max(0.0, 100 - (avg_payment_terms - TARGET_PAYMENT_TERMS_DAYS))
    return float(DEFAULT_RELIABILITY_SCORE)


def score_performance(agg: VendorAggregate, window_months: int) -> ScoreResult:
    """Score a vendor's consistency, volume and payment terms over a window.

    The overall score is the plain mean of the three rounded sub-scores.
    """
    consistency = round_half_up(normalize(agg.active_months, window_months))
    volume = round_half_up(normalize(agg.invoice_count, VOLUME_REFERENCE_INVOICES))
    reliability = round_half_up(reliability_from_terms(agg.avg_payment_terms))

    overall = round_half_up((consistency + volume + reliability) / 3)
    return ScoreResult(
        overall=overall,
        sub_scores={
            "consistency": consistency,
            "volume": volume,
            "reliability": reliability,
        },
    )


def score_payment_reliability(agg: PaymentAggregate) -> ScoreResult:
    """Score how reliably a vendor's payments land before their due date.

    Sub-scores are the overdue rate and discount utilization (percentages,
    2 decimals); overall is ``max(0, 100 - 2 * overdueRate)``.
    """
    overdue_rate = safe_rate(agg.overdue_count, agg.payment_records)
    discount_utilization = safe_rate(agg.discount_eligible, agg.payment_records)
    reliability = max(0.0, 100 - overdue_rate * OVERDUE_PENALTY_FACTOR)

    return ScoreResult(
        overall=round_half_up(reliability),
        sub_scores={
            "overdueRate": round_half_up(overdue_rate, 2),
            "discountUtilization": round_half_up(discount_utilization, 2),
        },
    )


def categorize_risk(overall: float) -> str:
    """Map an overall risk score to High/Medium/Low (strict greater-than)."""
    if overall > RISK_CATEGORY_THRESHOLDS["High"]:
        return "High"
    if overall > RISK_CATEGORY_THRESHOLDS["Medium"]:
        return "Medium"
    return "Low"


def risk_rates(agg: RiskAggregate) -> tuple[float, float]:
    """Late-invoice rate and overdue rate, both per invoice, as percentages."""
    late_rate = safe_rate(agg.late_invoices, agg.total_invoices)
    overdue_rate = safe_rate(agg.overdue_payments, agg.total_invoices)
    return late_rate, overdue_rate


def score_risk(agg: RiskAggregate) -> ScoreResult:
    """Weighted risk score over exposure, variability, timeliness and payment."""
    late_rate, overdue_rate = risk_rates(agg)

    exposure = normalize(agg.total_exposure, EXPOSURE_REFERENCE_AMOUNT)
    if agg.avg_invoice_value > 0:
        variability = min(100.0, (agg.invoice_variability / agg.avg_invoice_value) * 100)
    else:
        variability = 0.0
    timeliness = min(100.0, late_rate * TIMELINESS_RISK_FACTOR)
    payment = min(100.0, overdue_rate * PAYMENT_RISK_FACTOR)

    overall = round_half_up(
        exposure * RISK_WEIGHTS["exposure"]
        + variability * RISK_WEIGHTS["variability"]
        + timeliness * RISK_WEIGHTS["timeliness"]
        + payment * RISK_WEIGHTS["payment"]
    )
    return ScoreResult(
        overall=overall,
        sub_scores={
            "exposure": round_half_up(exposure),
            "variability": round_half_up(variability),
            "timeliness": round_half_up(timeliness),
            "payment": round_half_up(payment),
        },
        category=categorize_risk(overall),
    )
