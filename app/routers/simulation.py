"""
Simulation control panel.
Start/stop the rush-hour traffic simulator, tick it manually, or reset data to seed.
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_simulation, get_store
from app.schemas.simulation import SimulationStart, SimulationStateOut, SimulationTickOut
from app.services.occupancy_store import OccupancyStore
from app.services.simulation_service import SimulationController

router = APIRouter()


def _state_out(simulation: SimulationController) -> SimulationStateOut:
    state = simulation.state
    return SimulationStateOut(
        is_running=state.is_running,
        scenario=state.scenario,
        started_at=state.started_at,
        events_generated=state.events_generated,
        ticking=simulation.is_ticking,
    )


@router.get("/simulation", response_model=SimulationStateOut, summary="Simulation state")
def get_simulation_state(simulation: SimulationController = Depends(get_simulation)):
    return _state_out(simulation)


@router.post("/simulation/start", response_model=SimulationStateOut, summary="Start a scenario")
async def start_simulation(body: SimulationStart = SimulationStart(),
                           simulation: SimulationController = Depends(get_simulation)):
    """Resets data to seed, applies the scenario's opening counts and starts ticking."""
    await simulation.start(body.scenario, auto_tick=body.auto_tick)
    return _state_out(simulation)


@router.post("/simulation/stop", response_model=SimulationStateOut, summary="Stop and reset to seed")
async def stop_simulation(simulation: SimulationController = Depends(get_simulation)):
    await simulation.stop()
    return _state_out(simulation)


@router.post("/simulation/tick", response_model=SimulationTickOut, summary="Apply one simulation tick now")
async def tick_simulation(simulation: SimulationController = Depends(get_simulation)):
    accepted = await simulation.tick()
    return SimulationTickOut(accepted=accepted, state=_state_out(simulation))


@router.post("/simulation/reset", summary="Reset lots and violations to seed values")
def reset_data(store: OccupancyStore = Depends(get_store)):
    """Administrative reset for the simulator control. Does not stop a running simulation."""
    store.reset_to_seed()
    return {"status": "reset"}
