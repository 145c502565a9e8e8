"""API router for vendor analytics: scorecards, reliability, trends and risk."""
from fastapi import APIRouter, Depends, Query

from ..config.constants import (
    DEFAULT_CATEGORY_LIMIT,
    DEFAULT_RELIABILITY_LIMIT,
    DEFAULT_RISK_LIMIT,
    DEFAULT_SCORECARD_LIMIT,
    DEFAULT_TOP_VENDORS,
    MAX_LIMIT,
    MAX_WINDOW_MONTHS,
    PERFORMANCE_WINDOW_MONTHS,
    TRENDS_WINDOW_MONTHS,
)
from ..dependencies import get_aggregate_source
from ..services.aggregate_source import AggregateSource
from ..services.vendor_analytics_service import vendor_analytics_service

router = APIRouter(prefix="/vendor-analytics", tags=["vendor-analytics"])


@router.get("/performance-scorecard")
def performance_scorecard(
    limit: int = Query(DEFAULT_SCORECARD_LIMIT, ge=1, le=MAX_LIMIT, description="Max vendors"),
    timeframe: int = Query(PERFORMANCE_WINDOW_MONTHS, ge=1, le=MAX_WINDOW_MONTHS, description="Window in months"),
    source: AggregateSource = Depends(get_aggregate_source),
):
    """
    Vendor performance scorecard.

    Scores consistency (active months / window), volume (50 invoices = 100)
    and payment-terms reliability per vendor, largest spend first.
    """
    return vendor_analytics_service.performance_scorecard(source, limit=limit, timeframe=timeframe)


@router.get("/payment-reliability")
def payment_reliability(
    limit: int = Query(DEFAULT_RELIABILITY_LIMIT, ge=1, le=MAX_LIMIT),
    source: AggregateSource = Depends(get_aggregate_source),
):
    """Overdue rate, discount utilization and reliability score per vendor."""
    return vendor_analytics_service.payment_reliability(source, limit=limit)


@router.get("/spending-trends")
def spending_trends(
    months: int = Query(TRENDS_WINDOW_MONTHS, ge=1, le=MAX_WINDOW_MONTHS),
    top_vendors: int = Query(DEFAULT_TOP_VENDORS, ge=1, le=MAX_LIMIT, alias="topVendors"),
    source: AggregateSource = Depends(get_aggregate_source),
):
    """Monthly spend for the top vendors by spend, with a 3-vs-3 month growth rate."""
    return vendor_analytics_service.spending_trends(source, months=months, top_vendors=top_vendors)


@router.get("/risk-assessment")
def risk_assessment(
    limit: int = Query(DEFAULT_RISK_LIMIT, ge=1, le=MAX_LIMIT),
    source: AggregateSource = Depends(get_aggregate_source),
):
    """
    Vendor risk assessment over the last 24 months.

    Overall risk = 0.3 exposure + 0.2 variability + 0.25 timeliness + 0.25 payment;
    above 70 is High, above 40 Medium, otherwise Low.
    """
    return vendor_analytics_service.risk_assessment(source, limit=limit)


@router.get("/category-analysis")
def category_analysis(
    limit: int = Query(DEFAULT_CATEGORY_LIMIT, ge=1, le=MAX_LIMIT),
    source: AggregateSource = Depends(get_aggregate_source),
):
    """Line-item spend by category for the largest vendors."""
    return vendor_analytics_service.category_analysis(source, limit=limit)


@router.get("/summary")
def summary(source: AggregateSource = Depends(get_aggregate_source)):
    """Portfolio totals, active vendors and overdue exposure (12 months)."""
    return vendor_analytics_service.summary(source)
