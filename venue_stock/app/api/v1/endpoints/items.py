from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from venue_stock.app.api.deps import get_db
from venue_stock.app.db.models.models_v1 import InventoryItem, Supplier, Venue

router = APIRouter(prefix="/venues/{venue_id}/items")


class ItemCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    department_id: str | None = Field(default=None, max_length=64)
    unit: str | None = Field(default=None, max_length=32)
    unit_cost: float | None = Field(default=None, ge=0)
    par: float | None = Field(default=None, ge=0)
    pack_size: int | None = Field(default=None, gt=0)
    moq: int | None = Field(default=None, gt=0)
    avg_daily_sales: float | None = Field(default=None, ge=0)
    supplier_id: str | None = None


def _opt_float(value):
    return float(value) if value is not None else None


@router.get("")
def list_items(venue_id: str, department_id: str | None = None, db: Session = Depends(get_db)):
    stmt = select(InventoryItem).where(InventoryItem.venue_id == venue_id).order_by(InventoryItem.name)
    if department_id is not None:
        stmt = stmt.where(InventoryItem.department_id == department_id)

    rows = db.execute(stmt).scalars().all()
    return [
        {
            "id": it.id,
            "name": it.name,
            "department_id": it.department_id,
            "unit": it.unit,
            "unit_cost": _opt_float(it.unit_cost),
            "par": _opt_float(it.par),
            "pack_size": it.pack_size,
            "moq": it.moq,
            "avg_daily_sales": _opt_float(it.avg_daily_sales),
            "supplier_id": it.supplier_id,
        }
        for it in rows
    ]


@router.post("")
def create_item(venue_id: str, payload: ItemCreate, db: Session = Depends(get_db)):
    if not db.get(Venue, venue_id):
        raise HTTPException(status_code=404, detail="Venue not found")
    if db.get(InventoryItem, payload.id):
        raise HTTPException(status_code=409, detail="Item already exists")
    if payload.supplier_id is not None:
        sup = db.get(Supplier, payload.supplier_id)
        if not sup or sup.venue_id != venue_id:
            raise HTTPException(status_code=400, detail="Invalid supplier_id")

    it = InventoryItem(venue_id=venue_id, **payload.model_dump())
    db.add(it)
    db.commit()
    return {"id": it.id, "name": it.name}
