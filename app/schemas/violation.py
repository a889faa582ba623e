from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from app.models.violation import ViolationStatus


class EvidenceOut(BaseModel):
    id: str
    violation_id: str
    captured_at: datetime
    vehicle_count: int
    sha256_hash: str
    camera_id: Optional[str]
    lot_section: Optional[str]

    class Config:
        from_attributes = True


class ViolationOut(BaseModel):
    id: str
    lot_id: str
    lot_name: str
    contractor: str
    allowed_capacity: int
    started_at: datetime
    ended_at: Optional[datetime]
    peak_count: int
    max_excess: int
    duration_minutes: int
    penalty_amount: int              # 0 until status == resolved
    rule_version: str
    status: ViolationStatus
    evidence: list[EvidenceOut] = []

    class Config:
        from_attributes = True


class OffenderOut(BaseModel):
    contractor: str
    total_violations: int
    total_violation_hours: float
    total_penalties: int
    lots: list[str]

    class Config:
        from_attributes = True
