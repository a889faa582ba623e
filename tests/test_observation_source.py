"""Unit tests for the pluggable observation sources."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timezone

from app.exceptions import InvalidInputError
from app.models.parking_lot import ParkingLot
from app.services.observation_source import Observation, ReplaySource, RushHourSource

T0 = datetime(2026, 2, 20, 8, 0, tzinfo=timezone.utc)


def make_lots():
    return [
        ParkingLot(id="lot-A", name="A", contractor="ACME", allowed_capacity=100,
                   current_count=2, penalty_rate_per_hour=50),
        ParkingLot(id="lot-B", name="B", contractor="ACME", allowed_capacity=40,
                   current_count=38, penalty_rate_per_hour=50),
    ]


class TestRushHourSource:
    def test_one_observation_per_lot_within_delta(self):
        lots = make_lots()
        batch = RushHourSource(seed=7).next_batch(lots, T0)

        assert [o.lot_id for o in batch] == ["lot-A", "lot-B"]
        for lot, obs in zip(lots, batch):
            assert obs.observed_at == T0
            assert obs.source == "simulation"
            assert obs.vehicle_count >= 0
            assert obs.vehicle_count - lot.current_count <= 8
            assert obs.vehicle_count >= max(0, lot.current_count - 4)

    def test_counts_never_negative(self):
        lots = make_lots()
        lots[0].current_count = 0
        source = RushHourSource(seed=1, min_delta=-10, max_delta=-5)
        assert source.next_batch(lots, T0)[0].vehicle_count == 0

    def test_opening_counts_near_capacity(self):
        counts = RushHourSource(seed=3).opening_counts(make_lots())
        assert 95 <= counts["lot-A"] <= 120
        assert 38 <= counts["lot-B"] <= 48

    def test_same_seed_same_walk(self):
        lots = make_lots()
        first = [o.vehicle_count for o in RushHourSource(seed=42).next_batch(lots, T0)]
        second = [o.vehicle_count for o in RushHourSource(seed=42).next_batch(lots, T0)]
        assert first == second


class TestReplaySource:
    def test_replays_in_order_per_tick(self):
        observations = [Observation("lot-A", n, T0) for n in (101, 102, 103)]
        source = ReplaySource(observations, per_tick=2)

        assert [o.vehicle_count for o in source.next_batch([], T0)] == [101, 102]
        assert [o.vehicle_count for o in source.next_batch([], T0)] == [103]
        assert source.next_batch([], T0) == []

    def test_from_jsonl(self, tmp_path):
        path = tmp_path / "feed.jsonl"
        path.write_text(
            '{"lot_id": "lot-A", "vehicle_count": 120, "observed_at": "2026-02-20T08:00:00Z"}\n'
            "\n"
            '{"lot_id": "lot-A", "vehicle_count": 90, "observed_at": "2026-02-20T09:30:00Z", "camera_id": "CAM-1"}\n',
            encoding="utf-8",
        )
        source = ReplaySource.from_jsonl(path)

        assert source.remaining == 2
        first, = source.next_batch([], T0)
        assert first.observed_at == T0
        assert first.source == "replay"
        second, = source.next_batch([], T0)
        assert second.camera_id == "CAM-1"

    def test_malformed_line_rejected(self, tmp_path):
        path = tmp_path / "bad.jsonl"
        path.write_text('{"lot_id": "lot-A", "observed_at": "2026-02-20T08:00:00Z"}\n', encoding="utf-8")
        with pytest.raises(InvalidInputError):
            ReplaySource.from_jsonl(path)
