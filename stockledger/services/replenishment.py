"""
Replenishment planner.

Scans a customer's active parts for physical shortage (current < minimum),
groups them by default supplier and stages one pendente order per supplier,
sized to refill each part to its target level.

Each supplier group is committed on its own: a database failure for one
supplier is rolled back and reported, the other suppliers still get their
orders. Running the planner twice while shortages persist creates duplicate
orders; checking for open orders first is the caller's job.

The scan only decides which parts go to which supplier. Quantities and order
value are computed from the rows re-read under lock inside each group's own
transaction, so a group never sizes from a snapshot older than the commits
of the groups before it.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockledger.app.db.models.core_types import OrderSource, SkipReason
from stockledger.app.db.models.models_v1 import Part, ReplenishmentOrder
from stockledger.services.availability import is_low_stock
from stockledger.services.errors import InvalidMagnitude
from stockledger.services.procurement import add_order

logger = structlog.get_logger(__name__)

DEFAULT_FALLBACK_MULTIPLIER = Decimal("2")


@dataclass(frozen=True)
class SkippedPart:
    part_id: int
    name: str
    reason: SkipReason


@dataclass(frozen=True)
class FailedSupplier:
    supplier_id: int
    part_ids: list[int]
    error: str


@dataclass
class PlannerSummary:
    orders_created: int = 0
    total_value: Decimal = Decimal("0")
    orders: list[ReplenishmentOrder] = field(default_factory=list)
    skipped: list[SkippedPart] = field(default_factory=list)
    failed_suppliers: list[FailedSupplier] = field(default_factory=list)


def refill_target(part: Part, fallback_multiplier: Decimal = DEFAULT_FALLBACK_MULTIPLIER) -> Decimal:
    """max(maximum, minimum) when a maximum is set, else minimum * multiplier."""
    if part.maximum_quantity is not None:
        return max(part.maximum_quantity, part.minimum_quantity)
    return part.minimum_quantity * fallback_multiplier


def requested_quantity(part: Part, fallback_multiplier: Decimal = DEFAULT_FALLBACK_MULTIPLIER) -> Decimal:
    return refill_target(part, fallback_multiplier) - part.current_quantity


def _low_stock_parts(db: Session, customer_id: str) -> list[Part]:
    parts = (
        db.execute(
            select(Part)
            .where(Part.customer_id == customer_id)
            .where(Part.is_active.is_(True))
            .order_by(Part.supplier_id, Part.id)
        )
        .scalars()
        .all()
    )
    return [p for p in parts if is_low_stock(p)]


def _lock_parts(db: Session, part_ids: list[int]) -> list[Part]:
    return list(
        db.execute(
            select(Part)
            .where(Part.id.in_(part_ids))
            .order_by(Part.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .all()
    )


def generate_replenishment_orders(
    db: Session,
    *,
    customer_id: str,
    order_number_prefix: str,
    fallback_multiplier: Decimal = DEFAULT_FALLBACK_MULTIPLIER,
) -> PlannerSummary:
    # below 1 the fallback target could sit at or under current stock
    if fallback_multiplier < 1:
        raise InvalidMagnitude(f"Fallback multiplier must be at least 1 (got {fallback_multiplier})")

    summary = PlannerSummary()

    # ---------- SELECT + GROUP ----------
    groups: dict[int, list[int]] = defaultdict(list)
    for part in _low_stock_parts(db, customer_id):
        if part.supplier_id is None:
            summary.skipped.append(
                SkippedPart(part_id=part.id, name=part.name, reason=SkipReason.supplier_missing)
            )
            logger.info("replenishment_part_skipped", part_id=part.id, reason=SkipReason.supplier_missing.value)
            continue
        groups[part.supplier_id].append(part.id)

    # ---------- ONE TRANSACTION PER SUPPLIER ----------
    for supplier_id, part_ids in groups.items():
        try:
            lines: list[tuple[Part, Decimal]] = []
            changed: list[SkippedPart] = []
            for part in _lock_parts(db, part_ids):
                if not part.is_active or part.supplier_id != supplier_id or not is_low_stock(part):
                    changed.append(
                        SkippedPart(part_id=part.id, name=part.name, reason=SkipReason.changed_during_run)
                    )
                    continue
                lines.append((part, requested_quantity(part, fallback_multiplier)))

            if not lines:
                db.rollback()
                summary.skipped.extend(changed)
                logger.info("replenishment_group_emptied", supplier_id=supplier_id, part_ids=part_ids)
                continue

            order = add_order(
                db,
                customer_id=customer_id,
                supplier_id=supplier_id,
                lines=lines,
                order_number_prefix=order_number_prefix,
                source=OrderSource.auto_generated,
            )
            value = sum((qty * part.cost_price for part, qty in lines), Decimal("0"))
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            summary.failed_suppliers.append(
                FailedSupplier(supplier_id=supplier_id, part_ids=part_ids, error=str(exc))
            )
            logger.error(
                "replenishment_supplier_failed",
                customer_id=customer_id,
                supplier_id=supplier_id,
                error=str(exc),
            )
            continue

        summary.skipped.extend(changed)
        for skipped in changed:
            logger.info("replenishment_part_skipped", part_id=skipped.part_id, reason=skipped.reason.value)
        summary.orders.append(order)
        summary.orders_created += 1
        summary.total_value += value

    logger.info(
        "replenishment_generated",
        customer_id=customer_id,
        orders_created=summary.orders_created,
        total_value=str(summary.total_value),
        skipped=len(summary.skipped),
        failed=len(summary.failed_suppliers),
    )
    return summary
