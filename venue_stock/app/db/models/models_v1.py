from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Boolean,
    ForeignKey,
    Numeric,
    Enum,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from venue_stock.app.db.base import Base
from venue_stock.app.db.models.core_types import MovementType, OrderStatus

# Clé de lock / d'order pour les lignes sans fournisseur résolu
UNASSIGNED_KEY = "__UNASSIGNED__"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


# ---------- MASTER DATA ----------
class Venue(Base):
    __tablename__ = "venues"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Supplier(Base):
    __tablename__ = "suppliers"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    venue_id: Mapped[str] = mapped_column(ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    lead_time_days: Mapped[int | None] = mapped_column(Integer)

    __table_args__ = (
        CheckConstraint("lead_time_days IS NULL OR lead_time_days >= 0", name="ck_supplier_lead_time_nonneg"),
    )


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    venue_id: Mapped[str] = mapped_column(ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    department_id: Mapped[str | None] = mapped_column(String(64), index=True)
    unit: Mapped[str | None] = mapped_column(String(32))
    unit_cost: Mapped[Decimal | None] = mapped_column(Numeric(14, 4))

    # par absent = niveau cible inconnu (différent de 0)
    par: Mapped[Decimal | None] = mapped_column(Numeric(14, 3))
    pack_size: Mapped[int | None] = mapped_column(Integer)
    moq: Mapped[int | None] = mapped_column(Integer)
    avg_daily_sales: Mapped[Decimal | None] = mapped_column(Numeric(14, 3))

    supplier_id: Mapped[str | None] = mapped_column(ForeignKey("suppliers.id", ondelete="SET NULL"))
    supplier: Mapped[Supplier | None] = relationship()


class SupplierPrice(Base):
    __tablename__ = "supplier_prices"
    item_id: Mapped[str] = mapped_column(ForeignKey("inventory_items.id", ondelete="CASCADE"), primary_key=True)
    supplier_id: Mapped[str] = mapped_column(ForeignKey("suppliers.id", ondelete="CASCADE"), primary_key=True)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    is_contract: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    supplier: Mapped[Supplier] = relationship()

    __table_args__ = (CheckConstraint("price >= 0", name="ck_supplier_price_nonneg"),)


# ---------- STOCK-TAKE ----------
class StockCount(Base):
    """Dernier comptage physique par item (un seul snapshot vivant)."""

    __tablename__ = "stock_counts"
    item_id: Mapped[str] = mapped_column(ForeignKey("inventory_items.id", ondelete="CASCADE"), primary_key=True)
    venue_id: Mapped[str] = mapped_column(ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False, index=True)
    qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    counted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (CheckConstraint("qty >= 0", name="ck_stock_count_qty_nonneg"),)


class StockMovement(Base):
    __tablename__ = "stock_movements"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    venue_id: Mapped[str] = mapped_column(ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False)
    item_id: Mapped[str] = mapped_column(ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False)
    movement_type: Mapped[MovementType] = mapped_column(Enum(MovementType, name="movement_type", values_callable=_enum_values), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    happened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_movement_qty_pos"),
        Index("ix_stock_movements_item_time", "item_id", "happened_at"),
    )


# ---------- ORDERS ----------
class Order(Base):
    __tablename__ = "orders"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    venue_id: Mapped[str] = mapped_column(ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False)
    supplier_id: Mapped[str | None] = mapped_column(String(64))
    # supplier_id ou UNASSIGNED_KEY : NULL ne matche pas NULL en SQL
    supplier_key: Mapped[str] = mapped_column(String(64), nullable=False)
    supplier_name: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        default=OrderStatus.draft,
        nullable=False,
    )
    source: Mapped[str] = mapped_column(String(32), default="suggestions", nullable=False)
    needs_supplier_review: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    lines_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(64))
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    lines: Mapped[list["OrderLine"]] = relationship(back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (Index("ix_orders_venue_key_status", "venue_id", "supplier_key", "status"),)


class OrderLine(Base):
    __tablename__ = "order_lines"
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    product_name: Mapped[str | None] = mapped_column(String(255))
    qty: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    pack_size: Mapped[int | None] = mapped_column(Integer)
    needs_par: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    needs_supplier: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(32))
    department_id: Mapped[str | None] = mapped_column(String(64))

    order: Mapped[Order] = relationship(back_populates="lines")

    __table_args__ = (
        CheckConstraint("qty > 0", name="ck_order_line_qty_pos"),
        CheckConstraint("unit_cost >= 0", name="ck_order_line_unit_cost_nonneg"),
    )


class OrderLock(Base):
    """
    Un lock par (venue, supplier_key) tant qu'un draft est ouvert.
    La PK composite sert de primitive "create only if absent".
    """

    __tablename__ = "order_locks"
    venue_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    supplier_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    order_id: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
