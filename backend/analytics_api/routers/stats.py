"""API router for dashboard statistics."""
from fastapi import APIRouter, Depends

from ..dependencies import get_aggregate_source
from ..services.aggregate_source import AggregateSource
from ..services.stats_service import stats_service

router = APIRouter(tags=["stats"])


@router.get("/stats")
def get_stats(source: AggregateSource = Depends(get_aggregate_source)):
    """Totals for the overview cards."""
    return stats_service.overview(source)


@router.get("/invoice-trends")
def get_invoice_trends(source: AggregateSource = Depends(get_aggregate_source)):
    """Monthly invoice count and spend for the last 12 months."""
    return stats_service.invoice_trends(source)
