# Typed aggregate records and request models
from .aggregates import (
    CategoryAggregate,
    MonthlyTotal,
    OverviewTotals,
    PaymentAggregate,
    RiskAggregate,
    TrendPoint,
    VendorAggregate,
    VendorSpend,
    VendorSummaryAggregate,
)
from .chat import ChatQueryRequest, ValidateSqlRequest, ExplainSqlRequest, BatchQueryRequest

__all__ = [
    "CategoryAggregate",
    "MonthlyTotal",
    "OverviewTotals",
    "PaymentAggregate",
    "RiskAggregate",
    "TrendPoint",
    "VendorAggregate",
    "VendorSpend",
    "VendorSummaryAggregate",
    "ChatQueryRequest",
    "ValidateSqlRequest",
    "ExplainSqlRequest",
    "BatchQueryRequest",
]
