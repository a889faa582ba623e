"""
Violation records (active or resolved) and their evidence trail.
Created, refreshed and closed by OccupancyStore; never mutated after resolution.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ViolationStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


@dataclass
class Evidence:
    id: str
    violation_id: str
    captured_at: datetime
    vehicle_count: int
    sha256_hash: str
    camera_id: Optional[str] = None
    lot_section: Optional[str] = None


@dataclass
class Violation:
    id: str
    lot_id: str
    lot_name: str
    contractor: str
    allowed_capacity: int            # capacity in effect when the violation opened
    started_at: datetime
    peak_count: int
    rule_version: str
    ended_at: Optional[datetime] = None
    duration_minutes: int = 0
    penalty_amount: int = 0          # meaningful only once resolved
    status: ViolationStatus = ViolationStatus.ACTIVE
    evidence: list[Evidence] = field(default_factory=list)

    @property
    def max_excess(self) -> int:
        return self.peak_count - self.allowed_capacity

    @property
    def is_active(self) -> bool:
        return self.status == ViolationStatus.ACTIVE

    def __repr__(self):
        return f"<Violation {self.id} lot={self.lot_id} status={self.status.value} excess={self.max_excess}>"
