"""
System health check endpoint.
Returns status of the backend, the store and the simulator.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.config import settings
from app.dependencies import get_simulation, get_store
from app.services.occupancy_store import OccupancyStore
from app.services.simulation_service import SimulationController

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(store: OccupancyStore = Depends(get_store),
                 simulation: SimulationController = Depends(get_simulation)):
    """
    Returns:
    - Backend status
    - Lot count known to the store
    - Whether the simulator is running / ticking
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": "ok",
        "rule_version": settings.RULE_VERSION,
        "lots": len(store.list_lots()),
        "simulation": {
            "running": simulation.state.is_running,
            "ticking": simulation.is_ticking,
        },
    }
