from datetime import datetime

from pydantic import BaseModel

from venue_stock.app.db.models.core_types import OrderStatus


class OrderLineRead(BaseModel):
    product_id: str
    product_name: str | None
    qty: int
    unit_cost: float
    pack_size: int | None
    needs_par: bool
    needs_supplier: bool
    reason: str | None
    department_id: str | None

    class Config:
        from_attributes = True


class OrderRead(BaseModel):
    id: int
    venue_id: str
    supplier_id: str | None
    supplier_key: str
    supplier_name: str | None
    status: OrderStatus
    source: str
    needs_supplier_review: bool
    lines_count: int
    total: float
    created_at: datetime
    created_by: str | None
    lines: list[OrderLineRead] = []

    class Config:
        from_attributes = True


class MaterializeRead(BaseModel):
    created: dict[str, int]
    guarded: list[str]
    failed: dict[str, str]
    skipped_empty: list[str]
