"""
Aggregate data source: grouped invoice/payment statistics from SQLite.

One instance wraps one connection for one request. Every method returns
typed records (see models/aggregates.py); numeric coercion happens here and
nowhere else. Windows and "overdue" comparisons are relative to ``as_of``
(today unless given), which keeps results reproducible in tests.

Every fetch runs under a deadline. A timeout or any sqlite3 error raises
DataSourceUnavailable, which aborts the request.
"""
from __future__ import annotations

import math
import sqlite3
import time
from datetime import date
from typing import Any, Sequence

import structlog

from ..config.constants import LATE_INVOICE_DAYS, UNCATEGORIZED
from ..middleware.error_handler import DataSourceUnavailable
from ..models.aggregates import (
    CategoryAggregate,
    MonthlyTotal,
    OverviewTotals,
    PaymentAggregate,
    RiskAggregate,
    TrendPoint,
    VendorAggregate,
    VendorSpend,
    VendorSummaryAggregate,
    to_float,
    to_int,
)
from .query_builder import QueryBuilder

logger = structlog.get_logger("analytics.services.aggregates")

# SQLite VM instructions between deadline checks
PROGRESS_STEPS = 10_000

MONTH_EXPR = "strftime('%Y-%m', i.invoice_date)"


class _SampleStdDev:
    """STDDEV(x) aggregate for SQLite: sample standard deviation, NULL for n < 2."""

    def __init__(self):
        self.n = 0
        self.mean = 0.0
        self.m2 = 0.0

    def step(self, value):
        if value is None:
            return
        x = float(value)
        self.n += 1
        delta = x - self.mean
        self.mean += delta / self.n
        self.m2 += delta * (x - self.mean)

    def finalize(self):
        if self.n < 2:
            return None
        return math.sqrt(self.m2 / (self.n - 1))


class AggregateSource:
    """Read-only aggregate queries over vendors, invoices, payments and line items."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        as_of: date | None = None,
        timeout: float = 30,
    ):
        self.conn = conn
        self.as_of = as_of or date.today()
        self.timeout = timeout
        if conn.row_factory is None:
            conn.row_factory = sqlite3.Row
        conn.create_aggregate("STDDEV", 1, _SampleStdDev)

    # --- Execution ---

    def _fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """Execute a query under the deadline and return all rows."""
        deadline = time.monotonic() + self.timeout
        self.conn.set_progress_handler(lambda: int(time.monotonic() > deadline), PROGRESS_STEPS)
        start = time.perf_counter()
        try:
            cursor = self.conn.execute(sql, list(params))
            rows = cursor.fetchall()
        except sqlite3.OperationalError as exc:
            if "interrupted" in str(exc):
                logger.error("aggregate_fetch_timeout", timeout_s=self.timeout)
                raise DataSourceUnavailable(
                    f"Aggregate query exceeded the {self.timeout:g}s timeout",
                    details={"timeout_s": self.timeout},
                ) from exc
            logger.error("aggregate_fetch_failed", error=str(exc))
            raise DataSourceUnavailable(str(exc)) from exc
        except sqlite3.Error as exc:
            logger.error("aggregate_fetch_failed", error=str(exc))
            raise DataSourceUnavailable(str(exc)) from exc
        finally:
            self.conn.set_progress_handler(None, 0)

        logger.debug(
            "aggregate_fetched",
            rows=len(rows),
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return rows

    def _fetch_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        rows = self._fetch_all(sql, params)
        return rows[0] if rows else None

    @property
    def _today(self) -> str:
        return self.as_of.isoformat()

    # --- Vendor projections ---

    def vendor_performance(self, window_months: int, limit: int) -> list[VendorAggregate]:
        """Per-vendor invoice statistics for vendors with invoices in the window."""
        qb = (
            QueryBuilder("vendors v")
            .join("invoices i", "v.id = i.vendor_id")
            .left_join("payments p", "i.id = p.invoice_id")
            .filter_window(window_months, self.as_of)
            .group_by("v.id, v.vendor_name, v.vendor_tax_id")
            .having("COUNT(i.id) > 0")
            .order_by("total_spend DESC, v.id ASC")
            .limit(limit)
        )
        sql, params = qb.build_select(f"""
            v.id AS vendor_id, v.vendor_name, v.vendor_tax_id,
            COUNT(i.id) AS invoice_count,
            COALESCE(SUM(i.invoice_total), 0) AS total_spend,
            COALESCE(AVG(i.invoice_total), 0) AS avg_invoice_value,
            MIN(i.invoice_date) AS first_invoice,
            MAX(i.invoice_date) AS last_invoice,
            COUNT(DISTINCT {MONTH_EXPR}) AS active_months,
            COALESCE(AVG(julianday(p.due_date) - julianday(i.invoice_date)), 0) AS avg_payment_terms
        """)
        return [VendorAggregate.from_row(row) for row in self._fetch_all(sql, params)]

    def payment_reliability(self, limit: int) -> list[PaymentAggregate]:
        """Per-vendor payment statistics over payments that carry a due date."""
        qb = (
            QueryBuilder("vendors v")
            .join("invoices i", "v.id = i.vendor_id")
            .join("payments p", "i.id = p.invoice_id")
            .where("p.due_date IS NOT NULL")
            .group_by("v.id, v.vendor_name")
            .having("COUNT(p.id) > 0")
            .order_by("payment_records DESC, v.id ASC")
            .limit(limit)
        )
        sql, params = qb.build_select(
            """
            v.id AS vendor_id, v.vendor_name,
            COUNT(p.id) AS payment_records,
            COALESCE(AVG(p.net_days), 0) AS avg_payment_terms,
            COALESCE(AVG(p.discount_percentage), 0) AS avg_discount_rate,
            COUNT(CASE WHEN date(p.due_date) < date(?) THEN 1 END) AS overdue_count,
            COUNT(CASE WHEN date(p.discount_due_date) >= date(?) THEN 1 END) AS discount_eligible,
            COALESCE(SUM(CASE WHEN date(p.discount_due_date) >= date(?)
                              THEN p.discounted_total ELSE 0 END), 0) AS potential_savings,
            MIN(p.due_date) AS earliest_due,
            MAX(p.due_date) AS latest_due
            """,
            params_before=[self._today] * 3,
        )
        return [PaymentAggregate.from_row(row) for row in self._fetch_all(sql, params)]

    def top_vendors_by_spend(self, window_months: int, n: int) -> list[VendorSpend]:
        """Top ``n`` vendors by spend in the window; ties go to the lower vendor id."""
        qb = (
            QueryBuilder("vendors v")
            .join("invoices i", "v.id = i.vendor_id")
            .filter_window(window_months, self.as_of)
            .group_by("v.id, v.vendor_name")
            .order_by("total_spend DESC, v.id ASC")
            .limit(n)
        )
        sql, params = qb.build_select(
            "v.id AS vendor_id, v.vendor_name, COALESCE(SUM(i.invoice_total), 0) AS total_spend"
        )
        return [VendorSpend.from_row(row) for row in self._fetch_all(sql, params)]

    def monthly_trends(self, vendor_ids: Sequence[str], window_months: int) -> list[TrendPoint]:
        """One point per (vendor, month) for the given vendors, by vendor name then month."""
        if not vendor_ids:
            return []
        qb = (
            QueryBuilder("vendors v")
            .join("invoices i", "v.id = i.vendor_id")
            .filter_in("v.id", list(vendor_ids))
            .filter_window(window_months, self.as_of)
            .group_by(f"v.id, v.vendor_name, {MONTH_EXPR}")
            .order_by("v.vendor_name ASC, month ASC")
        )
        sql, params = qb.build_select(f"""
            v.vendor_name,
            {MONTH_EXPR} AS month,
            COUNT(i.id) AS invoice_count,
            COALESCE(SUM(i.invoice_total), 0) AS monthly_spend,
            COALESCE(AVG(i.invoice_total), 0) AS avg_invoice_value
        """)
        return [TrendPoint.from_row(row) for row in self._fetch_all(sql, params)]

    def risk_profiles(self, window_months: int, limit: int) -> list[RiskAggregate]:
        """Exposure, variability and timeliness statistics per vendor."""
        qb = (
            QueryBuilder("vendors v")
            .join("invoices i", "v.id = i.vendor_id")
            .left_join("payments p", "i.id = p.invoice_id")
            .filter_window(window_months, self.as_of)
            .group_by("v.id, v.vendor_name, v.vendor_tax_id")
            .having("COUNT(i.id) > 0")
            .order_by("total_exposure DESC, v.id ASC")
            .limit(limit)
        )
        sql, params = qb.build_select(
            f"""
            v.id AS vendor_id, v.vendor_name, v.vendor_tax_id,
            COUNT(i.id) AS total_invoices,
            COALESCE(SUM(i.invoice_total), 0) AS total_exposure,
            COALESCE(AVG(i.invoice_total), 0) AS avg_invoice_value,
            COALESCE(STDDEV(i.invoice_total), 0) AS invoice_variability,
            COUNT(CASE WHEN julianday(i.invoice_date) > julianday(i.delivery_date) + ?
                       THEN 1 END) AS late_invoices,
            COUNT(CASE WHEN date(p.due_date) < date(?) THEN 1 END) AS overdue_payments,
            COALESCE(AVG(julianday(p.due_date) - julianday(i.invoice_date)), 0) AS avg_payment_window,
            MIN(i.invoice_date) AS relationship_start,
            MAX(i.invoice_date) AS last_activity,
            COUNT(DISTINCT {MONTH_EXPR}) AS active_months
            """,
            params_before=[LATE_INVOICE_DAYS, self._today],
        )
        return [RiskAggregate.from_row(row) for row in self._fetch_all(sql, params)]

    def category_spend(self, window_months: int, limit: int) -> list[CategoryAggregate]:
        """Line-item spend per (vendor, description), largest first."""
        qb = (
            QueryBuilder("vendors v")
            .join("invoices i", "v.id = i.vendor_id")
            .join("line_items li", "i.id = li.invoice_id")
            .filter_window(window_months, self.as_of)
            .where("li.total_price IS NOT NULL")
            .group_by("v.id, v.vendor_name, li.description")
            .having("COUNT(li.id) > 0")
            .order_by("category_spend DESC, v.id ASC, category ASC")
            .limit(limit)
        )
        sql, params = qb.build_select(
            """
            v.vendor_name,
            COALESCE(li.description, ?) AS category,
            COUNT(li.id) AS item_count,
            COALESCE(SUM(li.total_price), 0) AS category_spend,
            COALESCE(AVG(li.unit_price), 0) AS avg_unit_price,
            COALESCE(AVG(li.quantity), 0) AS avg_quantity
            """,
            params_before=[UNCATEGORIZED],
        )
        return [CategoryAggregate.from_row(row) for row in self._fetch_all(sql, params)]

    def vendor_summary(self, window_months: int) -> VendorSummaryAggregate:
        """Portfolio totals, recent activity and overdue exposure in the window."""
        qb = (
            QueryBuilder("vendors v")
            .join("invoices i", "v.id = i.vendor_id")
            .left_join("payments p", "i.id = p.invoice_id")
            .filter_window(window_months, self.as_of)
        )
        sql, params = qb.build_select(
            """
            COUNT(DISTINCT v.id) AS total_vendors,
            COUNT(DISTINCT i.id) AS total_invoices,
            COALESCE(SUM(i.invoice_total), 0) AS total_spend,
            COALESCE(AVG(i.invoice_total), 0) AS avg_invoice_value,
            COUNT(DISTINCT CASE WHEN date(i.invoice_date) >= date(?, '-30 days')
                                THEN v.id END) AS active_vendors_30d,
            COUNT(DISTINCT CASE WHEN date(i.invoice_date) >= date(?, '-90 days')
                                THEN v.id END) AS active_vendors_90d,
            COUNT(CASE WHEN date(p.due_date) < date(?) THEN 1 END) AS overdue_invoices,
            COALESCE(SUM(CASE WHEN date(p.due_date) < date(?)
                              THEN i.invoice_total ELSE 0 END), 0) AS overdue_amount
            """,
            params_before=[self._today] * 4,
        )
        return VendorSummaryAggregate.from_row(self._fetch_one(sql, params))

    # --- Dashboard totals ---

    def overview_totals(self) -> OverviewTotals:
        """Totals for the dashboard overview cards."""
        row = self._fetch_one(
            """
            SELECT
                (SELECT COUNT(*) FROM invoices) AS total_invoices,
                (SELECT COALESCE(SUM(invoice_total), 0) FROM invoices) AS total_spend,
                (SELECT COUNT(*) FROM vendors) AS vendor_count,
                (SELECT COUNT(*) FROM invoices i
                  WHERE NOT EXISTS (SELECT 1 FROM payments p WHERE p.invoice_id = i.id)
                ) AS pending_payments,
                (SELECT COUNT(*) FROM invoices
                  WHERE date(invoice_date) >= date(?, 'start of month')
                ) AS current_month_invoices,
                (SELECT COALESCE(SUM(invoice_total), 0) FROM invoices
                  WHERE date(invoice_date) >= date(?, 'start of month')
                ) AS current_month_spend
            """,
            [self._today, self._today],
        )
        return OverviewTotals(
            total_invoices=to_int(row["total_invoices"]),
            total_spend=to_float(row["total_spend"]),
            vendor_count=to_int(row["vendor_count"]),
            pending_payments=to_int(row["pending_payments"]),
            current_month_invoices=to_int(row["current_month_invoices"]),
            current_month_spend=to_float(row["current_month_spend"]),
        )

    def invoice_trends(self, months: int) -> list[MonthlyTotal]:
        """Invoice count and spend per month, oldest first."""
        qb = (
            QueryBuilder("invoices i")
            .where("i.invoice_date IS NOT NULL")
            .filter_window(months, self.as_of)
            .group_by(MONTH_EXPR)
            .order_by("month ASC")
        )
        sql, params = qb.build_select(f"""
            {MONTH_EXPR} AS month,
            COUNT(*) AS invoice_count,
            COALESCE(SUM(i.invoice_total), 0) AS total_spend
        """)
        return [MonthlyTotal.from_row(row) for row in self._fetch_all(sql, params)]
