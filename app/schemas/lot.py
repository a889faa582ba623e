from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from app.services.rule_engine import ComplianceStatus


class CountHistoryPointOut(BaseModel):
    timestamp: datetime
    count: int

    class Config:
        from_attributes = True


class ActiveViolationSummaryOut(BaseModel):
    id: str
    lot_id: str
    started_at: datetime
    max_excess: int
    current_excess: int
    duration_minutes: int

    class Config:
        from_attributes = True


class LotStatusOut(BaseModel):
    id: str
    name: str
    contractor: str
    allowed_capacity: int
    current_count: int
    penalty_rate_per_hour: float
    grace_period_minutes: int
    utilization: float
    status: ComplianceStatus
    active_violation: Optional[ActiveViolationSummaryOut] = None
    breach_started_at: Optional[datetime] = None
    grace_expires_at: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    updated_at: Optional[datetime] = None
    count_history: list[CountHistoryPointOut] = []

    class Config:
        from_attributes = True
