"""
Read-only projections returned by OccupancyStore.
Built under the store lock and detached from live state, so callers can
hold on to them without seeing later observations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from app.models.parking_lot import CountHistoryPoint
from app.models.violation import Violation
from app.services.rule_engine import ComplianceStatus, Transition


@dataclass
class ActiveViolationSummary:
    id: str
    lot_id: str
    started_at: datetime
    max_excess: int
    current_excess: int
    duration_minutes: int


@dataclass
class LotStatus:
    id: str
    name: str
    contractor: str
    allowed_capacity: int
    current_count: int
    penalty_rate_per_hour: float
    grace_period_minutes: int
    utilization: float
    status: ComplianceStatus
    active_violation: Optional[ActiveViolationSummary] = None
    breach_started_at: Optional[datetime] = None     # set while a grace breach is pending
    grace_expires_at: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    updated_at: Optional[datetime] = None
    count_history: list[CountHistoryPoint] = field(default_factory=list)


@dataclass
class OffenderSummary:
    contractor: str
    total_violations: int
    total_violation_hours: float
    total_penalties: int
    lots: list[str] = field(default_factory=list)


@dataclass
class AggregateStats:
    violations_today: int
    violations_this_week: int
    violations_this_month: int
    total_penalties_assessed: int
    active_violations: int
    lots_in_compliance: int
    lots_in_grace_period: int
    lots_violating: int


@dataclass
class HeatmapCell:
    day_of_week: int    # 0 = Sunday
    hour: int
    count: int


@dataclass
class ObservationResult:
    lot_id: str
    vehicle_count: int
    observed_at: datetime
    previous_status: ComplianceStatus
    status: ComplianceStatus
    transition: Transition
    escalated: bool = False          # a grace breach was promoted while applying
    violation: Optional[Violation] = None
