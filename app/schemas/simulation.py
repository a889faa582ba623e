from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class SimulationStart(BaseModel):
    scenario: str = "rush_hour"
    auto_tick: bool = True


class SimulationStateOut(BaseModel):
    is_running: bool
    scenario: Optional[str]
    started_at: Optional[datetime]
    events_generated: int
    ticking: bool = False

    class Config:
        from_attributes = True


class SimulationTickOut(BaseModel):
    accepted: int
    state: SimulationStateOut
