"""
Vendor analytics service: fetch aggregates, score, assemble.

Each public method serves one endpoint: it makes its own aggregate fetches,
runs the pure scoring/trend transforms and hands the sorted rows to the
report assembler. A failed fetch propagates and aborts the whole request.
"""
from __future__ import annotations

from collections import OrderedDict

import structlog

from ..config.constants import (
    CATEGORY_ROWS_PER_VENDOR,
    CATEGORY_WINDOW_MONTHS,
    RISK_CATEGORIES,
    RISK_WINDOW_MONTHS,
    SUMMARY_WINDOW_MONTHS,
)
from ..models.aggregates import (
    CategoryAggregate,
    PaymentAggregate,
    RiskAggregate,
    VendorAggregate,
)
from .aggregate_source import AggregateSource
from .normalizer import round_half_up, safe_rate
from .report import assemble, envelope
from .scoring import risk_rates, score_payment_reliability, score_performance, score_risk
from .trends import build_vendor_trends

logger = structlog.get_logger("analytics.services.vendor_analytics")


def _months_label(months: int) -> str:
    return f"{months} months"


class VendorAnalyticsService:
    """Business logic for the vendor analytics endpoints."""

    # --- Performance scorecard ---

    def performance_scorecard(self, source: AggregateSource, *, limit: int, timeframe: int) -> dict:
        """Consistency/volume/reliability scorecard, largest spend first."""
        aggregates = source.vendor_performance(timeframe, limit)
        rows = [self._performance_row(agg, timeframe) for agg in aggregates]
        logger.info("performance_scorecard_built", vendors=len(rows), timeframe=timeframe)
        return assemble(rows, limit, metadata={"timeframe": _months_label(timeframe)})

    @staticmethod
    def _performance_row(agg: VendorAggregate, timeframe: int) -> dict:
        score = score_performance(agg, timeframe)
        return {
            "vendorName": agg.vendor_name,
            "vendorTaxId": agg.vendor_tax_id,
            "totalSpend": agg.total_spend,
            "invoiceCount": agg.invoice_count,
            "avgInvoiceValue": agg.avg_invoice_value,
            "firstInvoice": agg.first_invoice,
            "lastInvoice": agg.last_invoice,
            "activeMonths": agg.active_months,
            "avgPaymentTerms": agg.avg_payment_terms,
            "performanceScore": score.as_dict(),
        }

    # --- Payment reliability ---

    def payment_reliability(self, source: AggregateSource, *, limit: int) -> dict:
        """Overdue and discount behaviour per vendor, most payment records first."""
        aggregates = source.payment_reliability(limit)
        rows = [self._reliability_row(agg) for agg in aggregates]
        logger.info("payment_reliability_built", vendors=len(rows))
        return assemble(rows, limit)

    @staticmethod
    def _reliability_row(agg: PaymentAggregate) -> dict:
        score = score_payment_reliability(agg)
        return {
            "vendorName": agg.vendor_name,
            "paymentRecords": agg.payment_records,
            "avgPaymentTerms": agg.avg_payment_terms,
            "avgDiscountRate": agg.avg_discount_rate,
            "overdueCount": agg.overdue_count,
            "overdueRate": score.sub_scores["overdueRate"],
            "discountEligible": agg.discount_eligible,
            "discountUtilization": score.sub_scores["discountUtilization"],
            "potentialSavings": agg.potential_savings,
            "reliabilityScore": score.overall,
            "paymentWindow": {
                "earliest": agg.earliest_due,
                "latest": agg.latest_due,
            },
        }

    # --- Spending trends ---

    def spending_trends(self, source: AggregateSource, *, months: int, top_vendors: int) -> dict:
        """Monthly spend and growth for the top vendors by spend."""
        top = source.top_vendors_by_spend(months, top_vendors)
        points = source.monthly_trends([v.vendor_id for v in top], months)
        rows = build_vendor_trends(points)
        logger.info("spending_trends_built", vendors=len(rows), months=months)
        return assemble(
            rows,
            top_vendors,
            metadata={
                "timeframe": _months_label(months),
                "topVendorsCount": top_vendors,
            },
        )

    # --- Risk assessment ---

    def risk_assessment(
        self,
        source: AggregateSource,
        *,
        limit: int,
        window_months: int = RISK_WINDOW_MONTHS,
    ) -> dict:
        """Weighted risk scores and categories, largest exposure first."""
        aggregates = source.risk_profiles(window_months, limit)
        rows = [self._risk_row(agg) for agg in aggregates]
        logger.info("risk_assessment_built", vendors=len(rows), window_months=window_months)
        return assemble(
            rows,
            limit,
            metadata={"timeframe": _months_label(window_months)},
            distribution=("riskDistribution", "riskCategory", RISK_CATEGORIES),
        )

    @staticmethod
    def _risk_row(agg: RiskAggregate) -> dict:
        score = score_risk(agg)
        late_rate, overdue_rate = risk_rates(agg)
        return {
            "vendorName": agg.vendor_name,
            "vendorTaxId": agg.vendor_tax_id,
            "totalInvoices": agg.total_invoices,
            "totalExposure": agg.total_exposure,
            "avgInvoiceValue": agg.avg_invoice_value,
            "invoiceVariability": agg.invoice_variability,
            "lateInvoices": agg.late_invoices,
            "lateInvoiceRate": round_half_up(late_rate, 2),
            "overduePayments": agg.overdue_payments,
            "overdueRate": round_half_up(overdue_rate, 2),
            "avgPaymentWindow": agg.avg_payment_window,
            "relationshipDuration": {
                "start": agg.relationship_start,
                "lastActivity": agg.last_activity,
                "activeMonths": agg.active_months,
            },
            "riskScores": score.as_dict(),
            "riskCategory": score.category,
        }

    # --- Category analysis ---

    def category_analysis(
        self,
        source: AggregateSource,
        *,
        limit: int,
        window_months: int = CATEGORY_WINDOW_MONTHS,
    ) -> dict:
        """Line-item spend by category per vendor, largest vendors first."""
        records = source.category_spend(window_months, max(0, limit) * CATEGORY_ROWS_PER_VENDOR)
        rows = group_categories(records)
        logger.info("category_analysis_built", vendors=len(rows))
        return assemble(rows, limit, metadata={"timeframe": _months_label(window_months)})

    # --- Summary ---

    def summary(self, source: AggregateSource, *, window_months: int = SUMMARY_WINDOW_MONTHS) -> dict:
        """Portfolio-wide totals for the analytics header."""
        agg = source.vendor_summary(window_months)
        data = {
            "totalVendors": agg.total_vendors,
            "totalInvoices": agg.total_invoices,
            "totalSpend": agg.total_spend,
            "avgInvoiceValue": agg.avg_invoice_value,
            "activeVendors": {
                "last30Days": agg.active_vendors_30d,
                "last90Days": agg.active_vendors_90d,
            },
            "overdueMetrics": {
                "invoiceCount": agg.overdue_invoices,
                "totalAmount": agg.overdue_amount,
            },
        }
        return envelope(data, metadata={"timeframe": _months_label(window_months)})


def group_categories(records: list[CategoryAggregate]) -> list[dict]:
    """Fold (vendor, category) rows into per-vendor breakdowns.

    Categories are sorted by spend with their share of the vendor's spend;
    vendors are sorted by total spend, descending.
    """
    vendors: OrderedDict[str, dict] = OrderedDict()
    for rec in records:
        vendor = vendors.setdefault(
            rec.vendor_name,
            {"vendorName": rec.vendor_name, "categories": [], "totalSpend": 0.0, "totalItems": 0},
        )
        vendor["categories"].append({
            "category": rec.category,
            "itemCount": rec.item_count,
            "categorySpend": rec.category_spend,
            "avgUnitPrice": rec.avg_unit_price,
            "avgQuantity": rec.avg_quantity,
        })
        vendor["totalSpend"] += rec.category_spend
        vendor["totalItems"] += rec.item_count

    for vendor in vendors.values():
        vendor["categories"].sort(key=lambda c: c["categorySpend"], reverse=True)
        for cat in vendor["categories"]:
            cat["percentage"] = round_half_up(safe_rate(cat["categorySpend"], vendor["totalSpend"]), 2)

    return sorted(vendors.values(), key=lambda v: v["totalSpend"], reverse=True)


# Singleton instance for router use
vendor_analytics_service = VendorAnalyticsService()
