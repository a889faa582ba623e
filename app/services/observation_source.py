"""
Observation sources — producers of (lot_id, vehicle_count, observed_at) events.

The store does not care where counts come from. The simulator pulls one
batch per tick from a source:
  - RushHourSource: random walk biased upward (pushes lots over capacity)
  - ReplaySource:   pre-recorded observations, from a list or a JSON-lines file
"""

import json
import random
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Protocol

from app.exceptions import InvalidInputError
from app.models.parking_lot import ParkingLot
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Observation:
    lot_id: str
    vehicle_count: int
    observed_at: datetime
    camera_id: Optional[str] = None
    lot_section: Optional[str] = None
    source: str = "sensor"     # sensor | manual | simulation | replay


class ObservationSource(Protocol):
    def next_batch(self, lots: list[ParkingLot], now: datetime) -> list[Observation]:
        """Observations to apply on this tick (may be empty)."""
        ...


class RushHourSource:
    """
    Rush hour traffic: every tick each lot moves by a delta in
    [min_delta, max_delta], biased toward arrivals. Counts never go negative.
    """

    def __init__(self, seed: Optional[int] = None, min_delta: int = -4, max_delta: int = 8):
        self._rng = random.Random(seed)
        self.min_delta = min_delta
        self.max_delta = max_delta

    def opening_counts(self, lots: list[ParkingLot]) -> dict[str, int]:
        """Counts at scenario start: 95%–120% of each lot's capacity."""
        return {
            lot.id: round(lot.allowed_capacity * (0.95 + self._rng.random() * 0.25))
            for lot in lots
        }

    def next_batch(self, lots: list[ParkingLot], now: datetime) -> list[Observation]:
        batch = []
        for lot in lots:
            delta = self._rng.randint(self.min_delta, self.max_delta)
            batch.append(Observation(
                lot_id=lot.id,
                vehicle_count=max(0, lot.current_count + delta),
                observed_at=now,
                camera_id=f"SIM-{lot.id}",
                source="simulation",
            ))
        return batch


class ReplaySource:
    """Replays recorded observations in order, `per_tick` at a time."""

    def __init__(self, observations: Iterable[Observation], per_tick: int = 1):
        self._queue = deque(observations)
        self.per_tick = per_tick

    @classmethod
    def from_jsonl(cls, path, per_tick: int = 1) -> "ReplaySource":
        """
        One JSON object per line:
            {"lot_id": "lot-002", "vehicle_count": 95, "observed_at": "2026-02-20T10:30:00Z"}
        Blank lines are skipped; a malformed line raises InvalidInputError.
        """
        observations = []
        with open(Path(path), encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                    observations.append(Observation(
                        lot_id=data["lot_id"],
                        vehicle_count=int(data["vehicle_count"]),
                        observed_at=datetime.fromisoformat(data["observed_at"].replace("Z", "+00:00")),
                        camera_id=data.get("camera_id"),
                        lot_section=data.get("lot_section"),
                        source="replay",
                    ))
                except (ValueError, KeyError, TypeError, AttributeError) as e:
                    raise InvalidInputError(f"{path}:{line_no}: bad observation record ({e})")
        logger.info(f"Loaded {len(observations)} observations from {path}")
        return cls(observations, per_tick=per_tick)

    @property
    def remaining(self) -> int:
        return len(self._queue)

    def next_batch(self, lots: list[ParkingLot], now: datetime) -> list[Observation]:
        batch = []
        while self._queue and len(batch) < self.per_tick:
            batch.append(self._queue.popleft())
        return batch
