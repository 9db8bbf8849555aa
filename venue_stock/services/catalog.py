"""
Catalog service (lecture seule).

Charge depuis la DB les entrées du moteur :
- items du catalogue (+ département optionnel)
- options de prix fournisseur par item
- snapshot des comptages + reçu / vendu depuis le dernier comptage

Toute la logique de calcul reste dans variance / suggestions.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from venue_stock.app.db.models.core_types import MovementType
from venue_stock.app.db.models.models_v1 import (
    InventoryItem,
    StockCount,
    StockMovement,
    Supplier,
    SupplierPrice,
)
from venue_stock.services.supplier_selector import SupplierPriceOption
from venue_stock.services.suggestions import CatalogItem, SupplierInfo


@dataclass
class StockTakeMaps:
    last_counts: dict[str, float] = field(default_factory=dict)
    received: dict[str, float] = field(default_factory=dict)
    sold: dict[str, float] = field(default_factory=dict)


def _as_float(value) -> float | None:
    return float(value) if value is not None else None


def _naive(value: datetime) -> datetime:
    # SQLite rend des datetimes naïfs : on compare tout en UTC naïf
    return value.astimezone(timezone.utc).replace(tzinfo=None) if value.tzinfo else value


def load_items(db: Session, venue_id: str, department_id: str | None = None) -> list[CatalogItem]:
    stmt = (
        select(InventoryItem)
        .where(InventoryItem.venue_id == venue_id)
        .order_by(InventoryItem.name, InventoryItem.id)
    )
    if department_id:
        stmt = stmt.where(InventoryItem.department_id == department_id)

    rows = db.execute(stmt).scalars().all()
    return [
        CatalogItem(
            id=it.id,
            name=it.name,
            department_id=it.department_id,
            unit_cost=_as_float(it.unit_cost),
            par=_as_float(it.par),
            pack_size=it.pack_size,
            moq=it.moq,
            avg_daily_sales=_as_float(it.avg_daily_sales),
            supplier_id=it.supplier_id,
            supplier_name=it.supplier.name if it.supplier else None,
        )
        for it in rows
    ]


def load_suppliers(db: Session, venue_id: str) -> dict[str, SupplierInfo]:
    rows = (
        db.execute(select(Supplier).where(Supplier.venue_id == venue_id).order_by(Supplier.name))
        .scalars()
        .all()
    )
    return {s.id: SupplierInfo(id=s.id, name=s.name, lead_time_days=s.lead_time_days) for s in rows}


def load_price_options(db: Session, venue_id: str) -> dict[str, list[SupplierPriceOption]]:
    rows = (
        db.execute(
            select(SupplierPrice)
            .join(InventoryItem, InventoryItem.id == SupplierPrice.item_id)
            .where(InventoryItem.venue_id == venue_id)
            .order_by(SupplierPrice.item_id, SupplierPrice.supplier_id)
        )
        .scalars()
        .all()
    )
    options: dict[str, list[SupplierPriceOption]] = defaultdict(list)
    for p in rows:
        options[p.item_id].append(
            SupplierPriceOption(
                supplier_id=p.supplier_id,
                supplier_name=p.supplier.name if p.supplier else None,
                price=float(p.price),
                is_contract=bool(p.is_contract),
            )
        )
    return dict(options)


def load_stock_take(db: Session, venue_id: str) -> StockTakeMaps:
    """
    Reçu / vendu = mouvements postérieurs au dernier comptage de l'item
    (tous les mouvements si l'item n'a jamais été compté).
    """
    maps = StockTakeMaps()

    counted_at: dict[str, datetime] = {}
    for c in db.execute(select(StockCount).where(StockCount.venue_id == venue_id)).scalars():
        maps.last_counts[c.item_id] = float(c.qty)
        counted_at[c.item_id] = _naive(c.counted_at)

    movements = db.execute(select(StockMovement).where(StockMovement.venue_id == venue_id)).scalars()
    for mv in movements:
        since = counted_at.get(mv.item_id)
        if since is not None and _naive(mv.happened_at) <= since:
            continue
        target = maps.received if mv.movement_type == MovementType.receipt else maps.sold
        target[mv.item_id] = target.get(mv.item_id, 0.0) + float(mv.quantity)

    return maps
