"""create stock ledger and replenishment tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

QTY = sa.Numeric(14, 3)
MONEY = sa.Numeric(14, 2)

part_module = sa.Enum("clean", "maintenance", name="part_module")
movement_type = sa.Enum("entrada", "saida", "ajuste", name="movement_type")
order_status = sa.Enum("pendente", "confirmado", "enviado", "recebido", "cancelado", name="order_status")
order_source = sa.Enum("manual", "auto_generated", name="order_source")
order_priority = sa.Enum("baixa", "media", "alta", name="order_priority")


def upgrade() -> None:
    op.create_table(
        "suppliers",
        sa.Column("id", sa.BigInteger, primary_key=True),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contact_name", sa.String(200)),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(32)),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("customer_id", "name", name="uq_supplier_customer_name"),
    )
    op.create_index("ix_suppliers_customer_id", "suppliers", ["customer_id"])

    op.create_table(
        "parts",
        sa.Column("id", sa.BigInteger, primary_key=True),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("company_id", sa.String(64)),
        sa.Column("module", part_module, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("part_number", sa.String(64)),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("current_quantity", QTY, nullable=False),
        sa.Column("minimum_quantity", QTY, nullable=False),
        sa.Column("maximum_quantity", QTY),
        sa.Column("cost_price", MONEY, nullable=False),
        sa.Column("supplier_id", sa.BigInteger, sa.ForeignKey("suppliers.id", ondelete="RESTRICT")),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("current_quantity >= 0", name="ck_part_current_qty_nonneg"),
        sa.CheckConstraint("minimum_quantity >= 0", name="ck_part_minimum_qty_nonneg"),
        sa.CheckConstraint("maximum_quantity IS NULL OR maximum_quantity >= 0", name="ck_part_maximum_qty_nonneg"),
        sa.CheckConstraint("cost_price >= 0", name="ck_part_cost_price_nonneg"),
    )
    op.create_index("ix_parts_customer_module", "parts", ["customer_id", "module"])

    op.create_table(
        "replenishment_orders",
        sa.Column("id", sa.BigInteger, primary_key=True),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("supplier_id", sa.BigInteger, sa.ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("order_number", sa.String(64), nullable=False, unique=True),
        sa.Column("status", order_status, nullable=False),
        sa.Column("source", order_source, nullable=False),
        sa.Column("priority", order_priority, nullable=False),
        sa.Column("notes", sa.Text),
        sa.Column("expected_delivery_date", sa.Date),
        sa.Column("invoice_number", sa.String(64)),
        sa.Column("tracking_code", sa.String(128)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("shipped_at", sa.DateTime(timezone=True)),
        sa.Column("received_at", sa.DateTime(timezone=True)),
        sa.Column("received_by", sa.String(128)),
        sa.Column("received_notes", sa.Text),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("version", sa.Integer, nullable=False),
    )
    op.create_index("ix_replenishment_orders_customer_id", "replenishment_orders", ["customer_id"])
    op.create_index(
        "ix_replenishment_orders_customer_status",
        "replenishment_orders",
        ["customer_id", "status"],
    )

    op.create_table(
        "replenishment_order_items",
        sa.Column("id", sa.BigInteger, primary_key=True),
        sa.Column(
            "order_id",
            sa.BigInteger,
            sa.ForeignKey("replenishment_orders.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("part_id", sa.BigInteger, sa.ForeignKey("parts.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity_requested", QTY, nullable=False),
        sa.Column("quantity_confirmed", QTY),
        sa.Column("quantity_shipped", QTY),
        sa.Column("quantity_received", QTY),
        sa.Column("unit_cost", MONEY, nullable=False),
        sa.CheckConstraint("quantity_requested > 0", name="ck_order_item_requested_pos"),
        sa.CheckConstraint("quantity_confirmed IS NULL OR quantity_confirmed >= 0", name="ck_order_item_confirmed_nonneg"),
        sa.CheckConstraint("quantity_shipped IS NULL OR quantity_shipped >= 0", name="ck_order_item_shipped_nonneg"),
        sa.CheckConstraint("quantity_received IS NULL OR quantity_received >= 0", name="ck_order_item_received_nonneg"),
        sa.CheckConstraint("unit_cost >= 0", name="ck_order_item_unit_cost_nonneg"),
    )
    op.create_index("ix_replenishment_order_items_order_id", "replenishment_order_items", ["order_id"])
    op.create_index("ix_replenishment_order_items_part_id", "replenishment_order_items", ["part_id"])

    op.create_table(
        "part_movements",
        sa.Column("id", sa.BigInteger, primary_key=True),
        sa.Column("part_id", sa.BigInteger, sa.ForeignKey("parts.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("movement_type", movement_type, nullable=False),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("previous_quantity", QTY, nullable=False),
        sa.Column("new_quantity", QTY, nullable=False),
        sa.Column("reason", sa.String(255)),
        sa.Column("actor", sa.String(128), nullable=False),
        sa.Column("order_id", sa.BigInteger, sa.ForeignKey("replenishment_orders.id", ondelete="RESTRICT")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_part_movement_qty_nonneg"),
        sa.CheckConstraint("previous_quantity >= 0", name="ck_part_movement_previous_nonneg"),
        sa.CheckConstraint("new_quantity >= 0", name="ck_part_movement_new_nonneg"),
    )
    op.create_index("ix_part_movements_part_id", "part_movements", ["part_id"])
    op.create_index("ix_part_movements_part_time", "part_movements", ["part_id", "created_at"])


def downgrade() -> None:
    op.drop_table("part_movements")
    op.drop_table("replenishment_order_items")
    op.drop_table("replenishment_orders")
    op.drop_table("parts")
    op.drop_table("suppliers")

    bind = op.get_bind()
    for enum in (order_priority, order_source, order_status, movement_type, part_module):
        enum.drop(bind, checkfirst=True)
