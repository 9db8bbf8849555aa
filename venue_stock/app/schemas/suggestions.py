from pydantic import BaseModel, Field


class SuggestedLineIO(BaseModel):
    product_id: str = Field(min_length=1, max_length=64)
    product_name: str = ""
    qty: float
    supplier_id: str | None = None
    supplier_name: str | None = None
    unit_cost: float | None = None
    pack_size: int | None = None
    needs_par: bool = False
    needs_supplier: bool = False
    reason: str | None = None
    department_id: str | None = None

    class Config:
        from_attributes = True


class SuggestionBucketRead(BaseModel):
    supplier_key: str
    supplier_id: str | None
    supplier_name: str | None
    lines: list[SuggestedLineIO]
