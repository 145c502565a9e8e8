"""
Trend aggregator: monthly spend per vendor and period-over-period growth.
"""
from __future__ import annotations

from collections import OrderedDict
from typing import Iterable, Sequence

from ..config.constants import GROWTH_WINDOW_MONTHS
from ..models.aggregates import TrendPoint
from .normalizer import round_half_up


def group_by_vendor(points: Iterable[TrendPoint]) -> "OrderedDict[str, list[TrendPoint]]":
    """Partition trend points by vendor name, each sorted ascending by month.

    Vendors keep the order in which they first appear in ``points``.
    """
    grouped: OrderedDict[str, list[TrendPoint]] = OrderedDict()
    for point in points:
        grouped.setdefault(point.vendor_name, []).append(point)
    for vendor_points in grouped.values():
        vendor_points.sort(key=lambda p: p.month)
    return grouped


def _mean_spend(points: Sequence[TrendPoint]) -> float:
    if not points:
        return 0.0
    return sum(p.monthly_spend for p in points) / len(points)


def growth_rate(sorted_points: Sequence[TrendPoint], window: int = GROWTH_WINDOW_MONTHS) -> float:
    """Percent change of the last ``window`` months against the ``window`` before.

    Short histories use whatever points exist. With no earlier window the
    previous average falls back to the recent one, so growth is 0.
    """
    recent = sorted_points[-window:]
    previous = sorted_points[-2 * window:-window]

    recent_avg = _mean_spend(recent)
    previous_avg = _mean_spend(previous) if previous else recent_avg
    if previous_avg <= 0:
        return 0.0
    return round_half_up(((recent_avg - previous_avg) / previous_avg) * 100, 2)


def summarize_trend(sorted_points: Sequence[TrendPoint]) -> dict:
    """Totals, monthly average and growth rate for one vendor's trend."""
    total_spend = sum(p.monthly_spend for p in sorted_points)
    active_months = len(sorted_points)
    avg_monthly = total_spend / active_months if active_months else 0.0
    return {
        "totalSpend": total_spend,
        "avgMonthlySpend": round_half_up(avg_monthly, 2),
        "growthRate": growth_rate(sorted_points),
        "activeMonths": active_months,
        "totalInvoices": sum(p.invoice_count for p in sorted_points),
    }


def build_vendor_trends(points: Iterable[TrendPoint]) -> list[dict]:
    """Group points by vendor and attach the per-vendor summary."""
    return [
        {
            "vendorName": vendor_name,
            "trends": [p.to_dict() for p in vendor_points],
            "summary": summarize_trend(vendor_points),
        }
        for vendor_name, vendor_points in group_by_vendor(points).items()
    ]
