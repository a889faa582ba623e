"""
Traffic simulator — drives the store with synthetic observations.

start() resets the store to its seed, applies the scenario's opening counts
and (optionally) launches a background task that ticks every
SIMULATION_TICK_SECONDS. Each tick pulls one batch from the observation
source and pushes it through the regular observation apply path, so the
simulator exercises exactly the same rules as a real sensor feed.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from app.config import settings
from app.exceptions import InvalidInputError
from app.services.observation_service import poll_grace_expiry, submit_observation
from app.services.observation_source import Observation, ObservationSource, RushHourSource
from app.services.occupancy_store import OccupancyStore
from app.utils.logger import get_logger

logger = get_logger(__name__)

SCENARIOS = {
    "rush_hour": {
        "name": "Rush Hour",
        "description": "Simulates 8-9am and 5-6pm traffic patterns with high volume, pushes lots over capacity",
    },
}


@dataclass
class SimulationState:
    is_running: bool = False
    scenario: Optional[str] = None
    started_at: Optional[datetime] = None
    events_generated: int = 0     # observations submitted since start


def _default_source() -> ObservationSource:
    return RushHourSource(seed=settings.SIMULATION_SEED)


class SimulationController:
    def __init__(self, store: OccupancyStore,
                 source_factory: Callable[[], ObservationSource] = _default_source,
                 tick_seconds: float = settings.SIMULATION_TICK_SECONDS):
        self._store = store
        self._source_factory = source_factory
        self._source: Optional[ObservationSource] = None
        self._state = SimulationState()
        self._task: Optional[asyncio.Task] = None
        self.tick_seconds = tick_seconds

    @property
    def state(self) -> SimulationState:
        return replace(self._state)

    @property
    def is_ticking(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, scenario: str = "rush_hour", auto_tick: bool = True) -> SimulationState:
        if scenario not in SCENARIOS:
            raise InvalidInputError(f"Unknown scenario '{scenario}'", field="scenario")

        await self._cancel_ticker()
        self._store.reset_to_seed()
        self._source = self._source_factory()
        now = self._store.now()
        self._state = SimulationState(is_running=True, scenario=scenario, started_at=now)

        opening = getattr(self._source, "opening_counts", None)
        if opening is not None:
            for lot_id, count in opening(self._store.list_lots()).items():
                await self._submit(Observation(lot_id=lot_id, vehicle_count=count, observed_at=now,
                                               camera_id=f"SIM-{lot_id}", source="simulation"))

        if auto_tick and self.tick_seconds > 0:
            self._task = asyncio.create_task(self._run(), name="simulation-ticker")
        logger.info(f"🚦 Simulation started: {SCENARIOS[scenario]['name']} "
                    f"(auto_tick={auto_tick and self.tick_seconds > 0})")
        return self.state

    async def stop(self) -> SimulationState:
        await self._cancel_ticker()
        was_running = self._state.is_running
        self._state = SimulationState()
        self._source = None
        self._store.reset_to_seed()
        if was_running:
            logger.info("🛑 Simulation stopped, data reset to seed values")
        return self.state

    async def tick(self) -> int:
        """Apply one batch from the source. Returns how many observations were accepted."""
        if not self._state.is_running or self._source is None:
            return 0
        now = self._store.now()
        await poll_grace_expiry(self._store, now)
        accepted = 0
        for observation in self._source.next_batch(self._store.list_lots(), now):
            if await self._submit(observation):
                accepted += 1
        return accepted

    async def _submit(self, observation: Observation) -> bool:
        self._state.events_generated += 1
        return await submit_observation(self._store, observation) is not None

    async def _run(self):
        while self._state.is_running:
            await asyncio.sleep(self.tick_seconds)
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Simulation tick failed: {e}", exc_info=True)

    async def _cancel_ticker(self):
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
