from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from venue_stock.app.api.deps import get_db
from venue_stock.app.db.models.models_v1 import Venue

router = APIRouter(prefix="/venues")


class VenueCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=200)


@router.get("")
def list_venues(db: Session = Depends(get_db)):
    rows = db.execute(select(Venue).order_by(Venue.name)).scalars().all()
    return [{"id": v.id, "name": v.name, "active": v.active} for v in rows]


@router.post("")
def create_venue(payload: VenueCreate, db: Session = Depends(get_db)):
    if db.get(Venue, payload.id):
        raise HTTPException(status_code=409, detail="Venue already exists")

    v = Venue(id=payload.id, name=payload.name, active=True)
    db.add(v)
    db.commit()
    return {"id": v.id, "name": v.name}
