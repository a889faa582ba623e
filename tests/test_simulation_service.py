"""Unit tests for the traffic simulator controller."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import pytest
from datetime import datetime, timezone

from app.exceptions import InvalidInputError
from app.services.observation_source import Observation, ReplaySource, RushHourSource
from app.services.seed_data import build_seeded_store
from app.services.simulation_service import SimulationController

T0 = datetime(2026, 2, 20, 10, 0, tzinfo=timezone.utc)


def make_controller(source_factory=None, tick_seconds=0):
    store = build_seeded_store(clock=lambda: T0)
    controller = SimulationController(store, source_factory or (lambda: RushHourSource(seed=11)),
                                      tick_seconds=tick_seconds)
    return controller, store


def seed_counts(store):
    return {lot.id: lot.current_count for lot in store.list_lots()}


class TestSimulationController:
    @pytest.mark.asyncio
    async def test_start_applies_opening_counts(self):
        controller, store = make_controller()
        state = await controller.start("rush_hour", auto_tick=False)

        assert state.is_running
        assert state.scenario == "rush_hour"
        assert state.started_at == T0
        assert state.events_generated == 5
        for lot in store.list_lots():
            assert lot.updated_at == T0
            assert lot.current_count >= round(lot.allowed_capacity * 0.95)

    @pytest.mark.asyncio
    async def test_tick_applies_one_observation_per_lot(self):
        controller, store = make_controller()
        await controller.start("rush_hour", auto_tick=False)

        accepted = await controller.tick()

        assert accepted == 5
        assert controller.state.events_generated == 10
        for status in store.list_lot_statuses():
            assert len(status.count_history) == 2

    @pytest.mark.asyncio
    async def test_tick_is_noop_when_stopped(self):
        controller, store = make_controller()
        assert await controller.tick() == 0
        assert controller.state.events_generated == 0

    @pytest.mark.asyncio
    async def test_stop_resets_to_seed(self):
        controller, store = make_controller()
        before = seed_counts(store)
        await controller.start("rush_hour", auto_tick=False)
        await controller.tick()

        state = await controller.stop()

        assert not state.is_running
        assert state.events_generated == 0
        assert seed_counts(store) == before
        assert len(store.list_violations()) == 8

    @pytest.mark.asyncio
    async def test_unknown_scenario_rejected(self):
        controller, _ = make_controller()
        with pytest.raises(InvalidInputError):
            await controller.start("blizzard")

    @pytest.mark.asyncio
    async def test_replay_source_drives_store(self):
        feed = [Observation("lot-001", 130, T0), Observation("lot-001", 100, T0)]
        controller, store = make_controller(lambda: ReplaySource(feed))
        await controller.start("rush_hour", auto_tick=False)

        assert await controller.tick() == 1
        assert store.get_lot_status("lot-001").status.value == "violating"
        assert await controller.tick() == 1
        assert store.get_lot_status("lot-001").status.value == "compliant"
        assert await controller.tick() == 0

    @pytest.mark.asyncio
    async def test_rejected_observation_does_not_stop_tick(self):
        feed = [Observation("lot-999", 10, T0), Observation("lot-001", 50, T0)]
        controller, store = make_controller(lambda: ReplaySource(feed, per_tick=2))
        await controller.start("rush_hour", auto_tick=False)

        assert await controller.tick() == 1
        assert store.get_lot_status("lot-001").current_count == 50

    @pytest.mark.asyncio
    async def test_background_ticker_lifecycle(self):
        controller, _ = make_controller(tick_seconds=0.01)
        await controller.start("rush_hour", auto_tick=True)
        assert controller.is_ticking

        await asyncio.sleep(0.05)
        await controller.stop()
        assert not controller.is_ticking
