"""
Typed aggregate records produced by the aggregate source.

Rows are parsed into these records once, at the data-source boundary.
Missing or malformed numeric fields coerce to 0 there, so the scoring
code never sees None or strings.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping


def to_float(value: Any) -> float:
    """Coerce a numeric-ish value to float; None, NaN and junk become 0.0."""
    if value is None:
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(result) or math.isinf(result):
        return 0.0
    return result


def to_int(value: Any) -> int:
    """Coerce a count-like value to a non-negative int."""
    return max(0, int(to_float(value)))


def to_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class VendorAggregate:
    """Per-vendor invoice statistics within a lookback window."""
    vendor_id: str
    vendor_name: str
    vendor_tax_id: str | None
    invoice_count: int
    total_spend: float
    avg_invoice_value: float
    first_invoice: str | None
    last_invoice: str | None
    active_months: int
    avg_payment_terms: float

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> VendorAggregate:
        count = to_int(row["invoice_count"])
        return cls(
            vendor_id=str(row["vendor_id"]),
            vendor_name=row["vendor_name"] or "",
            vendor_tax_id=to_text(row["vendor_tax_id"]),
            invoice_count=count,
            total_spend=max(0.0, to_float(row["total_spend"])),
            avg_invoice_value=to_float(row["avg_invoice_value"]) if count else 0.0,
            first_invoice=to_text(row["first_invoice"]),
            last_invoice=to_text(row["last_invoice"]),
            active_months=to_int(row["active_months"]),
            avg_payment_terms=to_float(row["avg_payment_terms"]),
        )


@dataclass(frozen=True)
class PaymentAggregate:
    """Per-vendor payment statistics (payments with a due date)."""
    vendor_id: str
    vendor_name: str
    payment_records: int
    avg_payment_terms: float
    avg_discount_rate: float
    overdue_count: int
    discount_eligible: int
    potential_savings: float
    earliest_due: str | None
    latest_due: str | None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> PaymentAggregate:
        return cls(
            vendor_id=str(row["vendor_id"]),
            vendor_name=row["vendor_name"] or "",
            payment_records=to_int(row["payment_records"]),
            avg_payment_terms=to_float(row["avg_payment_terms"]),
            avg_discount_rate=to_float(row["avg_discount_rate"]),
            overdue_count=to_int(row["overdue_count"]),
            discount_eligible=to_int(row["discount_eligible"]),
            potential_savings=max(0.0, to_float(row["potential_savings"])),
            earliest_due=to_text(row["earliest_due"]),
            latest_due=to_text(row["latest_due"]),
        )


@dataclass(frozen=True)
class RiskAggregate:
    """Per-vendor exposure, variability and timeliness statistics."""
    vendor_id: str
    vendor_name: str
    vendor_tax_id: str | None
    total_invoices: int
    total_exposure: float
    avg_invoice_value: float
    invoice_variability: float
    late_invoices: int
    overdue_payments: int
    avg_payment_window: float
    relationship_start: str | None
    last_activity: str | None
    active_months: int

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> RiskAggregate:
        count = to_int(row["total_invoices"])
        return cls(
            vendor_id=str(row["vendor_id"]),
            vendor_name=row["vendor_name"] or "",
            vendor_tax_id=to_text(row["vendor_tax_id"]),
            total_invoices=count,
            total_exposure=max(0.0, to_float(row["total_exposure"])),
            avg_invoice_value=to_float(row["avg_invoice_value"]) if count else 0.0,
            invoice_variability=max(0.0, to_float(row["invoice_variability"])),
            late_invoices=to_int(row["late_invoices"]),
            overdue_payments=to_int(row["overdue_payments"]),
            avg_payment_window=to_float(row["avg_payment_window"]),
            relationship_start=to_text(row["relationship_start"]),
            last_activity=to_text(row["last_activity"]),
            active_months=to_int(row["active_months"]),
        )


@dataclass(frozen=True)
class VendorSpend:
    """Vendor ranked by total spend, used to pick trend vendors."""
    vendor_id: str
    vendor_name: str
    total_spend: float

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> VendorSpend:
        return cls(
            vendor_id=str(row["vendor_id"]),
            vendor_name=row["vendor_name"] or "",
            total_spend=to_float(row["total_spend"]),
        )


@dataclass(frozen=True)
class TrendPoint:
    """One (vendor, month) bucket. `month` is `YYYY-MM`."""
    vendor_name: str
    month: str
    invoice_count: int
    monthly_spend: float
    avg_invoice_value: float

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> TrendPoint:
        return cls(
            vendor_name=row["vendor_name"] or "",
            month=str(row["month"]),
            invoice_count=to_int(row["invoice_count"]),
            monthly_spend=to_float(row["monthly_spend"]),
            avg_invoice_value=to_float(row["avg_invoice_value"]),
        )

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "invoiceCount": self.invoice_count,
            "monthlySpend": self.monthly_spend,
            "avgInvoiceValue": self.avg_invoice_value,
        }


@dataclass(frozen=True)
class CategoryAggregate:
    """Line-item spend for one (vendor, category) pair."""
    vendor_name: str
    category: str
    item_count: int
    category_spend: float
    avg_unit_price: float
    avg_quantity: float

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> CategoryAggregate:
        return cls(
            vendor_name=row["vendor_name"] or "",
            category=row["category"],
            item_count=to_int(row["item_count"]),
            category_spend=to_float(row["category_spend"]),
            avg_unit_price=to_float(row["avg_unit_price"]),
            avg_quantity=to_float(row["avg_quantity"]),
        )


@dataclass(frozen=True)
class VendorSummaryAggregate:
    """Portfolio-wide vendor totals within a window."""
    total_vendors: int
    total_invoices: int
    total_spend: float
    avg_invoice_value: float
    active_vendors_30d: int
    active_vendors_90d: int
    overdue_invoices: int
    overdue_amount: float

    @classmethod
    def from_row(cls, row: Mapping[str, Any] | None) -> VendorSummaryAggregate:
        get = (dict(row) if row is not None else {}).get
        return cls(
            total_vendors=to_int(get("total_vendors")),
            total_invoices=to_int(get("total_invoices")),
            total_spend=to_float(get("total_spend")),
            avg_invoice_value=to_float(get("avg_invoice_value")),
            active_vendors_30d=to_int(get("active_vendors_30d")),
            active_vendors_90d=to_int(get("active_vendors_90d")),
            overdue_invoices=to_int(get("overdue_invoices")),
            overdue_amount=to_float(get("overdue_amount")),
        )


@dataclass(frozen=True)
class OverviewTotals:
    """Dashboard overview card totals."""
    total_invoices: int
    total_spend: float
    vendor_count: int
    pending_payments: int
    current_month_invoices: int
    current_month_spend: float


@dataclass(frozen=True)
class MonthlyTotal:
    """Invoice count and spend for one calendar month (`YYYY-MM`)."""
    month: str
    invoice_count: int
    total_spend: float

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> MonthlyTotal:
        return cls(
            month=str(row["month"]),
            invoice_count=to_int(row["invoice_count"]),
            total_spend=to_float(row["total_spend"]),
        )
