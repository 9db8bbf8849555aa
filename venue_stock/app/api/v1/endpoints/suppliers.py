from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from venue_stock.app.api.deps import get_db
from venue_stock.app.db.models.models_v1 import InventoryItem, Supplier, SupplierPrice, Venue

router = APIRouter(prefix="/venues/{venue_id}/suppliers")


class SupplierCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    lead_time_days: int | None = Field(default=None, ge=0)


class SupplierPriceCreate(BaseModel):
    item_id: str = Field(min_length=1, max_length=64)
    price: float = Field(ge=0)
    is_contract: bool = False


@router.get("")
def list_suppliers(venue_id: str, db: Session = Depends(get_db)):
    rows = (
        db.execute(select(Supplier).where(Supplier.venue_id == venue_id).order_by(Supplier.name))
        .scalars()
        .all()
    )
    return [
        {
            "id": s.id,
            "name": s.name,
            "lead_time_days": s.lead_time_days,
        }
        for s in rows
    ]


@router.post("")
def create_supplier(venue_id: str, payload: SupplierCreate, db: Session = Depends(get_db)):
    if not db.get(Venue, venue_id):
        raise HTTPException(status_code=404, detail="Venue not found")
    if db.get(Supplier, payload.id):
        raise HTTPException(status_code=409, detail="Supplier already exists")

    s = Supplier(
        id=payload.id,
        venue_id=venue_id,
        name=payload.name,
        lead_time_days=payload.lead_time_days,
    )
    db.add(s)
    db.commit()
    return {"id": s.id, "name": s.name}


@router.post("/{supplier_id}/prices")
def upsert_supplier_price(
    venue_id: str,
    supplier_id: str,
    payload: SupplierPriceCreate,
    db: Session = Depends(get_db),
):
    sup = db.get(Supplier, supplier_id)
    if not sup or sup.venue_id != venue_id:
        raise HTTPException(status_code=404, detail="Supplier not found")
    item = db.get(InventoryItem, payload.item_id)
    if not item or item.venue_id != venue_id:
        raise HTTPException(status_code=400, detail="Invalid item_id")

    sp = db.get(SupplierPrice, (payload.item_id, supplier_id))
    if not sp:
        sp = SupplierPrice(item_id=payload.item_id, supplier_id=supplier_id)
        db.add(sp)
    sp.price = payload.price
    sp.is_contract = payload.is_contract

    db.commit()
    return {"item_id": sp.item_id, "supplier_id": sp.supplier_id, "price": float(sp.price)}
