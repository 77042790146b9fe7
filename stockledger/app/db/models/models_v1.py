from __future__ import annotations

from datetime import datetime, date, timezone
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Numeric,
    Text,
    Enum,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockledger.app.db.base import Base
from stockledger.app.db.models.core_types import (
    PartModule,
    MovementType,
    OrderStatus,
    OrderSource,
    OrderPriority,
)

# SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

Quantity = Numeric(14, 3)
Money = Numeric(14, 2)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    # persist the enum values ("pendente", "entrada", ...) rather than member names
    return Enum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e])


# ---------- MASTER DATA ----------
class Supplier(Base):
    __tablename__ = "suppliers"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_name: Mapped[str | None] = mapped_column(String(200))
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(32))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("customer_id", "name", name="uq_supplier_customer_name"),)


class Part(Base):
    __tablename__ = "parts"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    company_id: Mapped[str | None] = mapped_column(String(64))
    module: Mapped[PartModule] = mapped_column(
        _enum(PartModule, "part_module"),
        default=PartModule.maintenance,
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    part_number: Mapped[str | None] = mapped_column(String(64))
    unit: Mapped[str] = mapped_column(String(32), default="un", nullable=False)

    # Written only by services.inventory.record_movement, alongside its movement row
    current_quantity: Mapped[Decimal] = mapped_column(Quantity, default=Decimal("0"), nullable=False)
    minimum_quantity: Mapped[Decimal] = mapped_column(Quantity, default=Decimal("0"), nullable=False)
    maximum_quantity: Mapped[Decimal | None] = mapped_column(Quantity)
    cost_price: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)

    supplier_id: Mapped[int | None] = mapped_column(ForeignKey("suppliers.id", ondelete="RESTRICT"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    supplier: Mapped[Supplier | None] = relationship()

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint("current_quantity >= 0", name="ck_part_current_qty_nonneg"),
        CheckConstraint("minimum_quantity >= 0", name="ck_part_minimum_qty_nonneg"),
        CheckConstraint("maximum_quantity IS NULL OR maximum_quantity >= 0", name="ck_part_maximum_qty_nonneg"),
        CheckConstraint("cost_price >= 0", name="ck_part_cost_price_nonneg"),
        Index("ix_parts_customer_module", "customer_id", "module"),
    )


# ---------- REPLENISHMENT ----------
class ReplenishmentOrder(Base):
    __tablename__ = "replenishment_orders"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    supplier_id: Mapped[int] = mapped_column(ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False)
    order_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        _enum(OrderStatus, "order_status"),
        default=OrderStatus.pending,
        nullable=False,
    )
    source: Mapped[OrderSource] = mapped_column(
        _enum(OrderSource, "order_source"),
        default=OrderSource.manual,
        nullable=False,
    )
    priority: Mapped[OrderPriority] = mapped_column(
        _enum(OrderPriority, "order_priority"),
        default=OrderPriority.medium,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text)
    expected_delivery_date: Mapped[date | None] = mapped_column(Date)
    invoice_number: Mapped[str | None] = mapped_column(String(64))
    tracking_code: Mapped[str | None] = mapped_column(String(128))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    shipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    received_by: Mapped[str | None] = mapped_column(String(128))
    received_notes: Mapped[str | None] = mapped_column(Text)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    supplier: Mapped[Supplier] = relationship()
    items: Mapped[list["ReplenishmentOrderItem"]] = relationship(
        back_populates="order",
        order_by="ReplenishmentOrderItem.id",
    )

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (Index("ix_replenishment_orders_customer_status", "customer_id", "status"),)


class ReplenishmentOrderItem(Base):
    __tablename__ = "replenishment_order_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("replenishment_orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    part_id: Mapped[int] = mapped_column(
        ForeignKey("parts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    quantity_requested: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    quantity_confirmed: Mapped[Decimal | None] = mapped_column(Quantity)
    quantity_shipped: Mapped[Decimal | None] = mapped_column(Quantity)
    quantity_received: Mapped[Decimal | None] = mapped_column(Quantity)
    unit_cost: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)

    order: Mapped[ReplenishmentOrder] = relationship(back_populates="items")
    part: Mapped[Part] = relationship()

    __table_args__ = (
        CheckConstraint("quantity_requested > 0", name="ck_order_item_requested_pos"),
        CheckConstraint("quantity_confirmed IS NULL OR quantity_confirmed >= 0", name="ck_order_item_confirmed_nonneg"),
        CheckConstraint("quantity_shipped IS NULL OR quantity_shipped >= 0", name="ck_order_item_shipped_nonneg"),
        CheckConstraint("quantity_received IS NULL OR quantity_received >= 0", name="ck_order_item_received_nonneg"),
        CheckConstraint("unit_cost >= 0", name="ck_order_item_unit_cost_nonneg"),
    )

    @property
    def receivable_quantity(self) -> Decimal:
        """Quantity posted at receipt: shipped, else confirmed, else requested."""
        if self.quantity_shipped is not None:
            return self.quantity_shipped
        if self.quantity_confirmed is not None:
            return self.quantity_confirmed
        return self.quantity_requested


# ---------- LEDGER ----------
class PartMovement(Base):
    __tablename__ = "part_movements"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)

    part_id: Mapped[int] = mapped_column(
        ForeignKey("parts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    movement_type: Mapped[MovementType] = mapped_column(_enum(MovementType, "movement_type"), nullable=False)
    # delta for entrada/saida, target absolute value for ajuste
    quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    previous_quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    new_quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255))
    actor: Mapped[str] = mapped_column(String(128), nullable=False)

    order_id: Mapped[int | None] = mapped_column(ForeignKey("replenishment_orders.id", ondelete="RESTRICT"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_part_movement_qty_nonneg"),
        CheckConstraint("previous_quantity >= 0", name="ck_part_movement_previous_nonneg"),
        CheckConstraint("new_quantity >= 0", name="ck_part_movement_new_nonneg"),
        Index("ix_part_movements_part_time", "part_id", "created_at"),
    )
