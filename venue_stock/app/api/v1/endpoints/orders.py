from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from venue_stock.app.api.deps import get_db, get_order_store
from venue_stock.app.db.models.core_types import OrderStatus
from venue_stock.app.db.models.models_v1 import Order
from venue_stock.app.schemas.orders import MaterializeRead, OrderRead
from venue_stock.app.schemas.suggestions import SuggestedLineIO
from venue_stock.services import materializer
from venue_stock.services.errors import (
    InvalidTransitionError,
    OrderNotFoundError,
    StoreError,
    ValidationError,
)
from venue_stock.services.order_store import SqlAlchemyOrderStore
from venue_stock.services.procurement import materialize_for_venue
from venue_stock.services.suggestions import SuggestedLine

router = APIRouter(prefix="/venues/{venue_id}/orders")


class MaterializeRequest(BaseModel):
    # None -> suggestions calculées depuis le catalogue
    buckets: dict[str, list[SuggestedLineIO]] | None = None
    department_id: str | None = None
    created_by: str | None = Field(default=None, max_length=64)


def _raise_http(e: Exception):
    if isinstance(e, OrderNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidTransitionError):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ValidationError):
        raise HTTPException(status_code=400, detail=str(e))
    raise HTTPException(status_code=503, detail=str(e))


@router.get("", response_model=list[OrderRead])
def list_orders(venue_id: str, status: OrderStatus | None = None, db: Session = Depends(get_db)):
    stmt = (
        select(Order)
        .options(selectinload(Order.lines))
        .where(Order.venue_id == venue_id)
        .order_by(Order.id.desc())
    )
    if status is not None:
        stmt = stmt.where(Order.status == status)
    return db.execute(stmt).scalars().all()


@router.get("/{order_id}", response_model=OrderRead)
def get_order(venue_id: str, order_id: int, db: Session = Depends(get_db)):
    order = db.get(Order, order_id)
    if not order or order.venue_id != venue_id:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.post("/materialize", response_model=MaterializeRead)
def materialize(venue_id: str, payload: MaterializeRequest, db: Session = Depends(get_db)):
    """
    Crée un draft par fournisseur.
    Fournisseur déjà couvert par un draft ouvert -> "guarded" (pas d'erreur).
    """
    buckets = None
    if payload.buckets is not None:
        buckets = {
            key: [SuggestedLine(**ln.model_dump()) for ln in lines]
            for key, lines in payload.buckets.items()
        }
    try:
        result = materialize_for_venue(
            db,
            venue_id,
            buckets,
            created_by=payload.created_by,
            department_id=payload.department_id,
        )
    except ValidationError as e:
        _raise_http(e)

    return MaterializeRead(
        created=result.created,
        guarded=result.guarded,
        failed=result.failed,
        skipped_empty=result.skipped_empty,
    )


@router.delete("/{order_id}")
def delete_draft(venue_id: str, order_id: int, store: SqlAlchemyOrderStore = Depends(get_order_store)):
    try:
        if store.get_order(venue_id, order_id) is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        lock_released = materializer.delete_draft(store, venue_id, order_id)
    except (ValidationError, StoreError) as e:
        _raise_http(e)
    return {"id": order_id, "deleted": True, "lock_released": lock_released}


@router.post("/{order_id}/{action}")
def transition(venue_id: str, order_id: int, action: str, store: SqlAlchemyOrderStore = Depends(get_order_store)):
    targets = {
        "submit": OrderStatus.submitted,
        "cancel": OrderStatus.cancelled,
        "receive": OrderStatus.received,
    }
    if action not in targets:
        raise HTTPException(status_code=404, detail=f"Unknown action {action}")

    try:
        status = materializer.transition_order(store, venue_id, order_id, targets[action])
    except (ValidationError, StoreError) as e:
        _raise_http(e)
    return {"id": order_id, "status": status}
