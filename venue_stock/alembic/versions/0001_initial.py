"""initial schema: catalog, stock-take, orders, order locks

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

movement_type = sa.Enum("RECEIPT", "SALE", name="movement_type")
order_status = sa.Enum("DRAFT", "SUBMITTED", "RECEIVED", "CANCELLED", name="order_status")


def upgrade() -> None:
    op.create_table(
        "venues",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "suppliers",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("venue_id", sa.String(64), sa.ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("lead_time_days", sa.Integer()),
        sa.CheckConstraint("lead_time_days IS NULL OR lead_time_days >= 0", name="ck_supplier_lead_time_nonneg"),
    )
    op.create_index("ix_suppliers_venue_id", "suppliers", ["venue_id"])

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("venue_id", sa.String(64), sa.ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("department_id", sa.String(64)),
        sa.Column("unit", sa.String(32)),
        sa.Column("unit_cost", sa.Numeric(14, 4)),
        sa.Column("par", sa.Numeric(14, 3)),
        sa.Column("pack_size", sa.Integer()),
        sa.Column("moq", sa.Integer()),
        sa.Column("avg_daily_sales", sa.Numeric(14, 3)),
        sa.Column("supplier_id", sa.String(64), sa.ForeignKey("suppliers.id", ondelete="SET NULL")),
    )
    op.create_index("ix_inventory_items_venue_id", "inventory_items", ["venue_id"])
    op.create_index("ix_inventory_items_department_id", "inventory_items", ["department_id"])

    op.create_table(
        "supplier_prices",
        sa.Column("item_id", sa.String(64), sa.ForeignKey("inventory_items.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("supplier_id", sa.String(64), sa.ForeignKey("suppliers.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("price", sa.Numeric(14, 4), nullable=False),
        sa.Column("is_contract", sa.Boolean(), nullable=False),
        sa.CheckConstraint("price >= 0", name="ck_supplier_price_nonneg"),
    )

    op.create_table(
        "stock_counts",
        sa.Column("item_id", sa.String(64), sa.ForeignKey("inventory_items.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("venue_id", sa.String(64), sa.ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("counted_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("qty >= 0", name="ck_stock_count_qty_nonneg"),
    )
    op.create_index("ix_stock_counts_venue_id", "stock_counts", ["venue_id"])

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("venue_id", sa.String(64), sa.ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("item_id", sa.String(64), sa.ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("movement_type", movement_type, nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("happened_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_stock_movement_qty_pos"),
    )
    op.create_index("ix_stock_movements_item_time", "stock_movements", ["item_id", "happened_at"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("venue_id", sa.String(64), sa.ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("supplier_id", sa.String(64)),
        sa.Column("supplier_key", sa.String(64), nullable=False),
        sa.Column("supplier_name", sa.String(255)),
        sa.Column("status", order_status, nullable=False),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("needs_supplier_review", sa.Boolean(), nullable=False),
        sa.Column("lines_count", sa.Integer(), nullable=False),
        sa.Column("total", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by", sa.String(64)),
        sa.Column("submitted_at", sa.DateTime(timezone=True)),
        sa.Column("received_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_orders_venue_key_status", "orders", ["venue_id", "supplier_key", "status"])

    op.create_table(
        "order_lines",
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("product_id", sa.String(64), primary_key=True),
        sa.Column("product_name", sa.String(255)),
        sa.Column("qty", sa.Integer(), nullable=False),
        sa.Column("unit_cost", sa.Numeric(14, 4), nullable=False),
        sa.Column("pack_size", sa.Integer()),
        sa.Column("needs_par", sa.Boolean(), nullable=False),
        sa.Column("needs_supplier", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.String(32)),
        sa.Column("department_id", sa.String(64)),
        sa.CheckConstraint("qty > 0", name="ck_order_line_qty_pos"),
        sa.CheckConstraint("unit_cost >= 0", name="ck_order_line_unit_cost_nonneg"),
    )

    # PK composite = primitive "create only if absent"
    op.create_table(
        "order_locks",
        sa.Column("venue_id", sa.String(64), primary_key=True),
        sa.Column("supplier_key", sa.String(64), primary_key=True),
        sa.Column("order_id", sa.Integer()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("order_locks")
    op.drop_table("order_lines")
    op.drop_index("ix_orders_venue_key_status", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_stock_movements_item_time", table_name="stock_movements")
    op.drop_table("stock_movements")
    op.drop_index("ix_stock_counts_venue_id", table_name="stock_counts")
    op.drop_table("stock_counts")
    op.drop_table("supplier_prices")
    op.drop_index("ix_inventory_items_department_id", table_name="inventory_items")
    op.drop_index("ix_inventory_items_venue_id", table_name="inventory_items")
    op.drop_table("inventory_items")
    op.drop_index("ix_suppliers_venue_id", table_name="suppliers")
    op.drop_table("suppliers")
    op.drop_table("venues")
    order_status.drop(op.get_bind(), checkfirst=True)
    movement_type.drop(op.get_bind(), checkfirst=True)
