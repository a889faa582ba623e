from pydantic import BaseModel


class AggregateStatsOut(BaseModel):
    violations_today: int
    violations_this_week: int
    violations_this_month: int
    total_penalties_assessed: int
    active_violations: int
    lots_in_compliance: int
    lots_in_grace_period: int
    lots_violating: int

    class Config:
        from_attributes = True


class HeatmapCellOut(BaseModel):
    day_of_week: int
    hour: int
    count: int

    class Config:
        from_attributes = True
