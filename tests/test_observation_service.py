"""Unit tests for the observation apply path and its alerts."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import AsyncMock, patch
from datetime import datetime, timedelta, timezone

from app.exceptions import NotFoundError
from app.models.parking_lot import ParkingLot
from app.services.observation_service import handle_observation, poll_grace_expiry, submit_observation
from app.services.observation_source import Observation
from app.services.occupancy_store import OccupancyStore
from app.services.rule_engine import Transition

T0 = datetime(2026, 2, 20, 8, 0, tzinfo=timezone.utc)


def make_store(grace=None):
    lot = ParkingLot(id="lot-A", name="Lot A", contractor="ACME", allowed_capacity=100,
                     current_count=80, penalty_rate_per_hour=50, grace_period_minutes=grace)
    return OccupancyStore([lot], clock=lambda: T0)


def make_observation(count, minutes=0, lot_id="lot-A"):
    return Observation(lot_id=lot_id, vehicle_count=count, observed_at=T0 + timedelta(minutes=minutes))


class TestObservationService:
    @pytest.mark.asyncio
    async def test_opening_violation_raises_alert(self):
        store = make_store()

        with patch("app.services.observation_service.create_alert", new_callable=AsyncMock) as mock_alert:
            result = await handle_observation(store, make_observation(120))

        assert result.transition == Transition.OPENED
        mock_alert.assert_called_once()
        assert mock_alert.call_args.args[0] == "violation_opened"

    @pytest.mark.asyncio
    async def test_closing_violation_raises_alert(self):
        store = make_store()

        with patch("app.services.observation_service.create_alert", new_callable=AsyncMock) as mock_alert:
            await handle_observation(store, make_observation(122))
            await handle_observation(store, make_observation(90, minutes=90))

        alert_types = [c.args[0] for c in mock_alert.call_args_list]
        assert alert_types == ["violation_opened", "violation_closed"]
        assert "penalty 1650" in mock_alert.call_args.args[2]

    @pytest.mark.asyncio
    async def test_compliant_count_raises_nothing(self):
        store = make_store()

        with patch("app.services.observation_service.create_alert", new_callable=AsyncMock) as mock_alert:
            result = await handle_observation(store, make_observation(95))

        assert result.transition == Transition.NONE
        mock_alert.assert_not_called()

    @pytest.mark.asyncio
    async def test_grace_breach_raises_nothing_until_expiry(self):
        store = make_store(grace=15)

        with patch("app.services.observation_service.create_alert", new_callable=AsyncMock) as mock_alert:
            await handle_observation(store, make_observation(120))
            mock_alert.assert_not_called()
            await handle_observation(store, make_observation(121, minutes=15))
            mock_alert.assert_called_once()

    @pytest.mark.asyncio
    async def test_unknown_lot_propagates(self):
        store = make_store()

        with pytest.raises(NotFoundError):
            await handle_observation(store, make_observation(10, lot_id="lot-Z"))

    @pytest.mark.asyncio
    async def test_submit_swallows_rejection_and_keeps_state(self):
        store = make_store()

        result = await submit_observation(store, make_observation(-5))

        assert result is None
        assert store.get_lot_status("lot-A").current_count == 80

    @pytest.mark.asyncio
    async def test_poll_promotes_and_alerts(self):
        store = make_store(grace=15)
        await handle_observation(store, make_observation(120))

        with patch("app.services.observation_service.create_alert", new_callable=AsyncMock) as mock_alert:
            promoted = await poll_grace_expiry(store, T0 + timedelta(minutes=20))

        assert len(promoted) == 1
        assert promoted[0].started_at == T0
        mock_alert.assert_called_once()
