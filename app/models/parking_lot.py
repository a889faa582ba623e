"""
Parking lot roster entry.
Holds the contractual limits and the live vehicle count for one lot.
currentCount is mutated only by OccupancyStore.apply_observation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.services.rule_engine import excess_of


@dataclass
class ParkingLot:
    id: str
    name: str
    contractor: str
    allowed_capacity: int
    current_count: int
    penalty_rate_per_hour: float
    grace_period_minutes: Optional[int] = None   # None means no grace period
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def grace_minutes(self) -> int:
        return self.grace_period_minutes or 0

    @property
    def utilization(self) -> float:
        return self.current_count / self.allowed_capacity

    @property
    def excess(self) -> int:
        return excess_of(self.current_count, self.allowed_capacity)

    def __repr__(self):
        return f"<ParkingLot {self.id} count={self.current_count}/{self.allowed_capacity}>"


@dataclass
class CountHistoryPoint:
    timestamp: datetime
    count: int


@dataclass
class PendingBreach:
    """Over-capacity interval still inside its grace period. Never listed as a violation."""
    lot_id: str
    started_at: datetime
