from pydantic import BaseModel


class VarianceRowRead(BaseModel):
    item_id: str
    name: str
    theoretical_on_hand: float
    delta_vs_par: float
    value_impact: float

    class Config:
        from_attributes = True


class VarianceScope(BaseModel):
    venue_id: str | None
    department_id: str | None = None


class VarianceReportRead(BaseModel):
    scope: VarianceScope
    shortages: list[VarianceRowRead]
    excesses: list[VarianceRowRead]
    total_shortage_value: float
    total_excess_value: float
