"""
Dashboard statistics service: overview card totals and invoice trends.
"""
from __future__ import annotations

import structlog

from ..config.constants import INVOICE_TRENDS_MONTHS
from .aggregate_source import AggregateSource

logger = structlog.get_logger("analytics.services.stats")


class StatsService:
    """Totals for the dashboard overview."""

    def overview(self, source: AggregateSource) -> dict:
        totals = source.overview_totals()
        return {
            "totalInvoices": totals.total_invoices,
            "totalSpend": totals.total_spend,
            "vendorCount": totals.vendor_count,
            "pendingPayments": totals.pending_payments,
            "currentMonth": {
                "invoices": totals.current_month_invoices,
                "spend": totals.current_month_spend,
            },
        }

    def invoice_trends(self, source: AggregateSource, months: int = INVOICE_TRENDS_MONTHS) -> list[dict]:
        """Monthly invoice count and spend, oldest month first."""
        trends = source.invoice_trends(months)
        logger.debug("invoice_trends_built", months=len(trends))
        return [
            {
                "month": t.month,
                "invoiceCount": t.invoice_count,
                "totalSpend": t.total_spend,
            }
            for t in trends
        ]


stats_service = StatsService()
