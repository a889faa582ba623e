"""Parking lots — live occupancy and compliance status."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from app.dependencies import get_store
from app.schemas.lot import LotStatusOut
from app.services.occupancy_store import OccupancyStore

router = APIRouter()


@router.get("/lots", response_model=list[LotStatusOut], summary="All lots with derived status")
def get_lots(now: Optional[datetime] = None, store: OccupancyStore = Depends(get_store)):
    """Every lot in roster order. `now` defaults to server time."""
    return store.list_lot_statuses(now)


@router.get("/lots/{lot_id}", response_model=LotStatusOut, summary="One lot with derived status")
def get_lot(lot_id: str, now: Optional[datetime] = None, store: OccupancyStore = Depends(get_store)):
    return store.get_lot_status(lot_id, now)
