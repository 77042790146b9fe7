"""
Stock ledger.

Part.current_quantity is a denormalized running total of the part's
movements. This module is the only place that writes it, and always in the
same flush as the movement row that explains the change.

Concurrency:
- the part row is read with SELECT ... FOR UPDATE (refreshed from the DB)
- Part.version is an optimistic counter; a stale version at flush, or an
  expected_version sent by the client that no longer matches, raises Conflict
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Mapping, TypeVar

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from stockledger.app.db.models.core_types import MovementType
from stockledger.app.db.models.models_v1 import Part, PartMovement, Supplier
from stockledger.services.errors import (
    Conflict,
    InsufficientStock,
    InvalidField,
    InvalidMagnitude,
    PartInactive,
    PartNotFound,
    StockError,
    SupplierNotFound,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidMagnitude(f"Invalid quantity: {value!r}")
    if not result.is_finite():
        raise InvalidMagnitude(f"Invalid quantity: {value!r}")
    return result


def apply_movement(movement_type: MovementType, previous: Decimal, magnitude: Decimal) -> Decimal:
    """
    New quantity after a movement.

    entrada: previous + magnitude
    saida:   previous - magnitude (never below zero)
    ajuste:  magnitude (absolute target, direction irrelevant)
    """
    if magnitude < 0:
        raise InvalidMagnitude(f"Quantity must be non-negative (got {magnitude})")

    if movement_type == MovementType.inbound:
        return previous + magnitude
    if movement_type == MovementType.outbound:
        if magnitude > previous:
            raise InsufficientStock(
                f"Insufficient stock (available={previous}, requested={magnitude})"
            )
        return previous - magnitude
    if movement_type == MovementType.adjustment:
        return magnitude

    raise InvalidMagnitude(f"Unknown movement type: {movement_type!r}")


def _lock_part(db: Session, part_id: int) -> Part:
    part = (
        db.execute(
            select(Part)
            .where(Part.id == part_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalar_one_or_none()
    )
    if not part:
        raise PartNotFound(f"Part {part_id} not found")
    return part


def record_movement(
    db: Session,
    *,
    part_id: int,
    movement_type: MovementType,
    magnitude,
    reason: str | None,
    actor: str,
    expected_version: int | None = None,
    order_id: int | None = None,
) -> PartMovement:
    """
    Append one movement and update the part's quantity in the same flush.

    Does not commit: the caller owns the transaction (an adjust-stock request,
    or the receipt savepoint in services.procurement).
    """
    magnitude = to_decimal(magnitude)
    if magnitude < 0:
        raise InvalidMagnitude(f"Quantity must be non-negative (got {magnitude})")

    part = _lock_part(db, part_id)
    if not part.is_active:
        raise PartInactive(f"Part {part.name} is inactive")

    if expected_version is not None and part.version != expected_version:
        raise Conflict(
            f"Part {part.name} was modified concurrently "
            f"(expected version {expected_version}, current {part.version})"
        )

    previous = part.current_quantity
    new = apply_movement(movement_type, previous, magnitude)

    mv = PartMovement(
        part_id=part.id,
        movement_type=movement_type,
        quantity=magnitude,
        previous_quantity=previous,
        new_quantity=new,
        reason=reason,
        actor=actor,
        order_id=order_id,
    )
    part.current_quantity = new
    db.add(mv)

    try:
        db.flush()
    except StaleDataError as exc:
        raise Conflict(f"Part {part_id} was modified concurrently, retry with fresh data") from exc

    logger.info(
        "stock_movement_recorded",
        part_id=part.id,
        movement_type=movement_type.value,
        quantity=str(magnitude),
        previous_quantity=str(previous),
        new_quantity=str(new),
        actor=actor,
    )
    return mv


def movement_history(db: Session, part_id: int) -> list[PartMovement]:
    if not db.get(Part, part_id):
        raise PartNotFound(f"Part {part_id} not found")

    return list(
        db.execute(
            select(PartMovement)
            .where(PartMovement.part_id == part_id)
            .order_by(PartMovement.created_at.asc(), PartMovement.id.asc())
        )
        .scalars()
        .all()
    )


def replay_quantity(movements: Iterable[PartMovement]) -> Decimal:
    """Rebuild a quantity from zero by replaying movements in order."""
    qty = Decimal("0")
    for mv in movements:
        qty = apply_movement(mv.movement_type, qty, mv.quantity)
    return qty


def deactivate_part(db: Session, part_id: int) -> Part:
    part = _lock_part(db, part_id)
    part.is_active = False
    try:
        db.flush()
    except StaleDataError as exc:
        raise Conflict(f"Part {part_id} was modified concurrently, retry with fresh data") from exc
    logger.info("part_deactivated", part_id=part_id)
    return part


# Catalog attributes; current_quantity and is_active have their own write paths
CATALOG_FIELDS = frozenset(
    {
        "company_id",
        "module",
        "name",
        "part_number",
        "unit",
        "minimum_quantity",
        "maximum_quantity",
        "cost_price",
        "supplier_id",
    }
)

NULLABLE_CATALOG_FIELDS = frozenset({"company_id", "part_number", "maximum_quantity", "supplier_id"})


def update_part(
    db: Session,
    part_id: int,
    changes: Mapping[str, Any],
    *,
    expected_version: int | None = None,
) -> Part:
    """Edit catalog attributes of a part. Stock only moves through record_movement."""
    read_only = sorted(set(changes) - CATALOG_FIELDS)
    if read_only:
        raise InvalidField(f"Fields cannot be edited: {', '.join(read_only)}")
    cleared = sorted(k for k, v in changes.items() if v is None and k not in NULLABLE_CATALOG_FIELDS)
    if cleared:
        raise InvalidField(f"Fields cannot be empty: {', '.join(cleared)}")

    part = _lock_part(db, part_id)
    if expected_version is not None and part.version != expected_version:
        raise Conflict(
            f"Part {part.name} was modified concurrently "
            f"(expected version {expected_version}, current {part.version})"
        )

    for key in ("minimum_quantity", "maximum_quantity", "cost_price"):
        if changes.get(key) is not None:
            value = to_decimal(changes[key])
            if value < 0:
                raise InvalidMagnitude(f"{key} must be non-negative (got {value})")

    supplier_id = changes.get("supplier_id")
    if supplier_id is not None:
        supplier = db.get(Supplier, supplier_id)
        if not supplier or supplier.customer_id != part.customer_id:
            raise SupplierNotFound(f"Supplier {supplier_id} not found")

    for key, value in changes.items():
        setattr(part, key, value)

    try:
        db.flush()
    except StaleDataError as exc:
        raise Conflict(f"Part {part_id} was modified concurrently, retry with fresh data") from exc
    logger.info("part_updated", part_id=part_id, fields=sorted(changes))
    return part


def retry_on_conflict(db: Session, operation: Callable[[], T], *, attempts: int) -> T:
    """
    Run `operation` and commit. On Conflict, roll back and run it again
    (every attempt re-reads the rows it locks). Other StockErrors roll back
    and propagate unchanged.
    """
    attempt = 1
    while True:
        try:
            result = operation()
            db.commit()
            return result
        except Conflict:
            db.rollback()
            if attempt >= attempts:
                logger.warning("conflict_retries_exhausted", attempts=attempts)
                raise
            logger.info("conflict_retry", attempt=attempt)
            attempt += 1
        except StockError:
            db.rollback()
            raise
