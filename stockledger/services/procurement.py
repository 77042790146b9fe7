"""
Replenishment order lifecycle.

This module drives orders through their states but contains NO stock
arithmetic: receipt posts inbound movements through
stockledger.services.inventory.record_movement.

    pendente -> confirmado -> enviado -> recebido
        \\            \\           \\
         +------------+-----------+--> cancelado

recebido and cancelado are terminal.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from stockledger.app.db.models.core_types import (
    MovementType,
    OrderPriority,
    OrderSource,
    OrderStatus,
)
from stockledger.app.db.models.models_v1 import (
    Part,
    PartMovement,
    ReplenishmentOrder,
    ReplenishmentOrderItem,
    Supplier,
    utcnow,
)
from stockledger.services.errors import (
    Conflict,
    InvalidMagnitude,
    InvalidTransition,
    OrderNotFound,
    PartInactive,
    PartNotFound,
    SupplierNotFound,
)
from stockledger.services.inventory import record_movement, to_decimal

logger = structlog.get_logger(__name__)

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.pending: frozenset({OrderStatus.confirmed, OrderStatus.cancelled}),
    OrderStatus.confirmed: frozenset({OrderStatus.shipped, OrderStatus.cancelled}),
    OrderStatus.shipped: frozenset({OrderStatus.received, OrderStatus.cancelled}),
    OrderStatus.received: frozenset(),
    OrderStatus.cancelled: frozenset(),
}

OPEN_STATUSES = {OrderStatus.pending, OrderStatus.confirmed, OrderStatus.shipped}


@dataclass(frozen=True)
class OrderLine:
    part_id: int
    quantity: Decimal


@dataclass
class ReceiptResult:
    order: ReplenishmentOrder
    movements: list[PartMovement]


def can_transition(src: OrderStatus, dst: OrderStatus) -> bool:
    return dst in TRANSITIONS.get(src, frozenset())


def ensure_transition(order: ReplenishmentOrder, dst: OrderStatus) -> None:
    if not can_transition(order.status, dst):
        raise InvalidTransition(
            f"Order {order.order_number} cannot go from {order.status.value} to {dst.value}"
        )


def new_order_number(prefix: str) -> str:
    return f"{prefix}-{utcnow():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


# ---------- READ ----------
def get_order(db: Session, order_id: int, *, for_update: bool = False) -> ReplenishmentOrder:
    stmt = (
        select(ReplenishmentOrder)
        .where(ReplenishmentOrder.id == order_id)
        .options(selectinload(ReplenishmentOrder.items))
    )
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)

    order = db.execute(stmt).scalar_one_or_none()
    if not order:
        raise OrderNotFound(f"Replenishment order {order_id} not found")
    return order


def list_replenishment_orders(db: Session, customer_id: str) -> list[ReplenishmentOrder]:
    return list(
        db.execute(
            select(ReplenishmentOrder)
            .where(ReplenishmentOrder.customer_id == customer_id)
            .options(
                selectinload(ReplenishmentOrder.items),
                selectinload(ReplenishmentOrder.supplier),
            )
            .order_by(ReplenishmentOrder.created_at.desc(), ReplenishmentOrder.id.desc())
        )
        .scalars()
        .all()
    )


# ---------- CREATE ----------
def add_order(
    db: Session,
    *,
    customer_id: str,
    supplier_id: int,
    lines: Iterable[tuple[Part, Decimal]],
    order_number_prefix: str,
    source: OrderSource = OrderSource.manual,
    priority: OrderPriority = OrderPriority.medium,
    notes: str | None = None,
    expected_delivery_date: date | None = None,
) -> ReplenishmentOrder:
    """Stage a pendente order with one item per (part, quantity). Flushes, never commits."""
    order = ReplenishmentOrder(
        customer_id=customer_id,
        supplier_id=supplier_id,
        order_number=new_order_number(order_number_prefix),
        status=OrderStatus.pending,
        source=source,
        priority=priority,
        notes=notes,
        expected_delivery_date=expected_delivery_date,
    )
    for part, qty in lines:
        order.items.append(
            ReplenishmentOrderItem(
                part_id=part.id,
                quantity_requested=qty,
                unit_cost=part.cost_price,
            )
        )
    db.add(order)
    db.flush()
    return order


def create_order(
    db: Session,
    *,
    customer_id: str,
    supplier_id: int,
    items: Iterable[OrderLine],
    order_number_prefix: str,
    priority: OrderPriority = OrderPriority.medium,
    notes: str | None = None,
    expected_delivery_date: date | None = None,
) -> ReplenishmentOrder:
    """Manual order. Validates supplier and parts before staging anything."""
    supplier = db.get(Supplier, supplier_id)
    if not supplier or supplier.customer_id != customer_id:
        raise SupplierNotFound(f"Supplier {supplier_id} not found")

    lines: list[tuple[Part, Decimal]] = []
    for item in items:
        qty = to_decimal(item.quantity)
        if qty <= 0:
            raise InvalidMagnitude(f"Requested quantity must be positive (got {qty})")
        part = db.get(Part, item.part_id)
        if not part or part.customer_id != customer_id:
            raise PartNotFound(f"Part {item.part_id} not found")
        if not part.is_active:
            raise PartInactive(f"Part {part.name} is inactive")
        lines.append((part, qty))

    if not lines:
        raise InvalidMagnitude("An order needs at least one item")

    order = add_order(
        db,
        customer_id=customer_id,
        supplier_id=supplier_id,
        lines=lines,
        order_number_prefix=order_number_prefix,
        source=OrderSource.manual,
        priority=priority,
        notes=notes,
        expected_delivery_date=expected_delivery_date,
    )
    logger.info("replenishment_order_created", order_id=order.id, order_number=order.order_number)
    return order


# ---------- SUPPLIER-FACING TRANSITIONS ----------
def _item_quantities(
    order: ReplenishmentOrder,
    quantities: Mapping[int, Decimal] | None,
) -> dict[int, Decimal]:
    """Validate a part_id -> quantity override map against the order's items."""
    if not quantities:
        return {}
    part_ids = {item.part_id for item in order.items}
    result = {}
    for part_id, qty in quantities.items():
        if int(part_id) not in part_ids:
            raise PartNotFound(f"Part {part_id} is not in order {order.order_number}")
        qty = to_decimal(qty)
        if qty < 0:
            raise InvalidMagnitude(f"Quantity must be non-negative (got {qty})")
        result[int(part_id)] = qty
    return result


def _flush_order(db: Session, order: ReplenishmentOrder) -> None:
    try:
        db.flush()
    except StaleDataError as exc:
        raise Conflict(
            f"Order {order.order_number} was modified concurrently, retry with fresh data"
        ) from exc


def confirm_order(
    db: Session,
    *,
    order_id: int,
    quantities: Mapping[int, Decimal] | None = None,
) -> ReplenishmentOrder:
    order = get_order(db, order_id, for_update=True)
    ensure_transition(order, OrderStatus.confirmed)
    overrides = _item_quantities(order, quantities)

    for item in order.items:
        item.quantity_confirmed = overrides.get(item.part_id, item.quantity_requested)
    order.status = OrderStatus.confirmed
    order.confirmed_at = utcnow()

    _flush_order(db, order)
    logger.info("replenishment_order_confirmed", order_id=order.id)
    return order


def ship_order(
    db: Session,
    *,
    order_id: int,
    tracking_code: str | None = None,
    invoice_number: str | None = None,
    quantities: Mapping[int, Decimal] | None = None,
) -> ReplenishmentOrder:
    order = get_order(db, order_id, for_update=True)
    ensure_transition(order, OrderStatus.shipped)
    overrides = _item_quantities(order, quantities)

    for item in order.items:
        default = item.quantity_confirmed if item.quantity_confirmed is not None else item.quantity_requested
        item.quantity_shipped = overrides.get(item.part_id, default)
    order.status = OrderStatus.shipped
    order.shipped_at = utcnow()
    order.tracking_code = tracking_code
    order.invoice_number = invoice_number

    _flush_order(db, order)
    logger.info("replenishment_order_shipped", order_id=order.id, tracking_code=tracking_code)
    return order


def cancel_order(db: Session, *, order_id: int, reason: str | None = None) -> ReplenishmentOrder:
    order = get_order(db, order_id, for_update=True)
    ensure_transition(order, OrderStatus.cancelled)

    order.status = OrderStatus.cancelled
    order.cancelled_at = utcnow()
    order.cancellation_reason = reason

    _flush_order(db, order)
    logger.info("replenishment_order_cancelled", order_id=order.id)
    return order


# ---------- RECEIPT ----------
def confirm_receipt(
    db: Session,
    *,
    order_id: int,
    notes: str | None,
    actor: str,
) -> ReceiptResult:
    """
    Terminal transition enviado -> recebido, posting one inbound movement per item.

    All or nothing: movements and the order update share one SAVEPOINT. If any
    item fails (part deactivated meanwhile, concurrent write, ...) the
    savepoint is rolled back, the order stays enviado and nothing is posted.

    Not idempotent: a second call on a received order raises InvalidTransition
    instead of posting stock twice.
    """
    order = get_order(db, order_id, for_update=True)
    if order.status != OrderStatus.shipped or order.shipped_at is None or order.received_at is not None:
        raise InvalidTransition(
            f"Order {order.order_number} cannot be received (status={order.status.value})"
        )
    ensure_transition(order, OrderStatus.received)

    reason = f"Receipt of order {order.order_number}"
    movements: list[PartMovement] = []

    try:
        with db.begin_nested():
            # stable lock order across concurrent receipts
            for item in sorted(order.items, key=lambda i: (i.part_id, i.id)):
                qty = item.receivable_quantity
                mv = record_movement(
                    db,
                    part_id=item.part_id,
                    movement_type=MovementType.inbound,
                    magnitude=qty,
                    reason=reason,
                    actor=actor,
                    order_id=order.id,
                )
                item.quantity_received = qty
                movements.append(mv)

            order.status = OrderStatus.received
            order.received_at = utcnow()
            order.received_by = actor
            order.received_notes = notes
            db.flush()
    except StaleDataError as exc:
        raise Conflict(
            f"Order {order.order_number} was modified concurrently, retry with fresh data"
        ) from exc
    except Exception as exc:
        logger.warning(
            "receipt_rolled_back",
            order_id=order_id,
            error=type(exc).__name__,
            detail=str(exc),
        )
        raise

    logger.info(
        "receipt_confirmed",
        order_id=order.id,
        order_number=order.order_number,
        movements=len(movements),
        actor=actor,
    )
    return ReceiptResult(order=order, movements=movements)
