from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from venue_stock.app.api.deps import get_db
from venue_stock.app.db.models.core_types import MovementType
from venue_stock.app.db.models.models_v1 import InventoryItem, StockCount, StockMovement

router = APIRouter(prefix="/venues/{venue_id}/stock")


# ---------- Schemas ----------
class CountCreate(BaseModel):
    item_id: str
    qty: float = Field(ge=0)
    counted_at: datetime | None = None


class MovementCreate(BaseModel):
    item_id: str
    movement_type: MovementType
    quantity: float = Field(gt=0)
    happened_at: datetime | None = None


# ---------- Helpers ----------
def _ensure_item(db: Session, venue_id: str, item_id: str) -> InventoryItem:
    item = db.get(InventoryItem, item_id)
    if not item or item.venue_id != venue_id:
        raise HTTPException(status_code=400, detail=f"Invalid item_id {item_id}")
    return item


# ---------- Endpoints ----------
@router.post("/counts")
def record_counts(venue_id: str, payload: list[CountCreate], db: Session = Depends(get_db)):
    """
    Enregistre un comptage physique (remplace le snapshot précédent de l'item).
    Les mouvements antérieurs au comptage ne comptent plus dans la variance.
    """
    for c in payload:
        _ensure_item(db, venue_id, c.item_id)

    now = datetime.now(timezone.utc)
    for c in payload:
        sc = db.get(StockCount, c.item_id)
        if not sc:
            sc = StockCount(item_id=c.item_id, venue_id=venue_id)
            db.add(sc)
        sc.qty = c.qty
        sc.counted_at = c.counted_at or now

    db.commit()
    return {"counted": len(payload)}


@router.post("/movements")
def record_movement(venue_id: str, payload: MovementCreate, db: Session = Depends(get_db)):
    _ensure_item(db, venue_id, payload.item_id)

    mv = StockMovement(
        venue_id=venue_id,
        item_id=payload.item_id,
        movement_type=payload.movement_type,
        quantity=payload.quantity,
        happened_at=payload.happened_at or datetime.now(timezone.utc),
    )
    db.add(mv)
    db.commit()
    return {"id": int(mv.id)}
