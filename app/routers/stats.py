"""Dashboard aggregates — headline counters and the violation heatmap."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from app.dependencies import get_store
from app.schemas.stats import AggregateStatsOut, HeatmapCellOut
from app.services.occupancy_store import OccupancyStore

router = APIRouter()


@router.get("/stats", response_model=AggregateStatsOut, summary="Aggregate compliance stats")
def get_stats(now: Optional[datetime] = None, store: OccupancyStore = Depends(get_store)):
    """
    Violation counts for today (since UTC midnight), the last 7 and 30 days,
    penalties assessed on resolved violations, and lots per status.
    """
    return store.get_aggregate_stats(now)


@router.get("/stats/heatmap", response_model=list[HeatmapCellOut], summary="Violations by weekday and hour")
def get_heatmap(store: OccupancyStore = Depends(get_store)):
    """168 cells (7 days × 24 hours, UTC). day_of_week 0 = Sunday."""
    return store.get_violation_heatmap()
