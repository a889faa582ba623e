"""Violations — list, detail and chronic offenders."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_store
from app.models.violation import ViolationStatus
from app.schemas.violation import OffenderOut, ViolationOut
from app.services.occupancy_store import OccupancyStore

router = APIRouter()


@router.get("/violations", response_model=list[ViolationOut], summary="List violations")
def get_violations(status: Optional[ViolationStatus] = None, lot_id: Optional[str] = None,
                   limit: int = Query(100, ge=1), store: OccupancyStore = Depends(get_store)):
    """Returns violations newest first. Filter by status (active | resolved) and lot_id."""
    violations = store.list_violations(status=status, lot_id=lot_id)[:limit]
    return [ViolationOut.model_validate(v) for v in violations]


@router.get("/violations/{violation_id}", response_model=ViolationOut, summary="Violation detail with evidence")
def get_violation(violation_id: str, store: OccupancyStore = Depends(get_store)):
    return ViolationOut.model_validate(store.get_violation(violation_id))


@router.get("/offenders", response_model=list[OffenderOut], summary="Chronic offenders by contractor")
def get_offenders(store: OccupancyStore = Depends(get_store)):
    """Contractors ranked by total violation-hours (active violations included)."""
    return store.get_chronic_offenders()
