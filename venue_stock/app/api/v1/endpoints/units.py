from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from venue_stock.services.units import normalize_quantity

router = APIRouter(prefix="/units")


class NormalizeRequest(BaseModel):
    quantity: Any = None
    unit: str | None = None


@router.post("/normalize")
def normalize(payload: NormalizeRequest):
    n = normalize_quantity(payload.quantity, payload.unit)
    return {"quantity": n.quantity, "base_unit": n.base_unit.value}
