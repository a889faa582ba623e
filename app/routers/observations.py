"""
Observation intake.
POST /observations — push one vehicle-count observation for a lot.
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_store
from app.schemas.observation import ObservationIn, ObservationResultOut
from app.services.observation_service import handle_observation
from app.services.observation_source import Observation
from app.services.occupancy_store import OccupancyStore

router = APIRouter()


@router.post("/observations", response_model=ObservationResultOut, summary="Submit a vehicle-count observation")
async def submit_observation(body: ObservationIn, store: OccupancyStore = Depends(get_store)):
    """
    Applies the count and any lifecycle transition it causes.
    404 for an unknown lot, 422 for a negative count or a stale timestamp;
    a rejected observation leaves the lot unchanged.
    """
    observation = Observation(
        lot_id=body.lot_id,
        vehicle_count=body.vehicle_count,
        observed_at=body.observed_at or store.now(),
        camera_id=body.camera_id,
        lot_section=body.lot_section,
        source="sensor",
    )
    result = await handle_observation(store, observation)
    return ObservationResultOut.model_validate(result)
