from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from app.schemas.violation import ViolationOut
from app.services.rule_engine import ComplianceStatus, Transition


class ObservationIn(BaseModel):
    lot_id: str
    vehicle_count: int = Field(..., ge=0)
    observed_at: Optional[datetime] = None     # defaults to server time
    camera_id: Optional[str] = None
    lot_section: Optional[str] = None


class ObservationResultOut(BaseModel):
    lot_id: str
    vehicle_count: int
    observed_at: datetime
    previous_status: ComplianceStatus
    status: ComplianceStatus
    transition: Transition
    escalated: bool
    violation: Optional[ViolationOut] = None

    class Config:
        from_attributes = True
