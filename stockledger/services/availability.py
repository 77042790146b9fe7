"""
Availability calculator (read only).

Decorates a Part snapshot with reserved/incoming/projected figures instead of
attaching them to the ORM object: the ledger's owned fields stay separate
from externally derived ones.

    projected = current - reserved + incoming   (may be negative)
    is_low_stock     = current < minimum        (physical shortage today)
    is_projected_low = projected <= minimum     (impending shortage)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from stockledger.app.db.models.core_types import OrderStatus, PartModule
from stockledger.app.db.models.models_v1 import (
    Part,
    ReplenishmentOrder,
    ReplenishmentOrderItem,
)
from stockledger.services.demand import DemandFeed, NoDemand

# Orders whose confirmed/shipped quantities count as incoming stock
INCOMING_ORDER_STATUSES = {
    OrderStatus.confirmed,
    OrderStatus.shipped,
}


@dataclass(frozen=True)
class PartAvailability:
    id: int
    customer_id: str
    company_id: str | None
    module: PartModule
    name: str
    part_number: str | None
    unit: str
    current_quantity: Decimal
    minimum_quantity: Decimal
    maximum_quantity: Decimal | None
    cost_price: Decimal
    supplier_id: int | None
    is_active: bool
    version: int

    reserved_quantity: Decimal
    incoming_quantity: Decimal
    projected_quantity: Decimal
    is_low_stock: bool
    is_projected_low: bool


def projected_quantity(current: Decimal, reserved: Decimal, incoming: Decimal) -> Decimal:
    return current - reserved + incoming


def is_low_stock(part: Part) -> bool:
    return part.current_quantity < part.minimum_quantity


def is_projected_low(projected: Decimal, minimum: Decimal) -> bool:
    return projected <= minimum


def annotate(part: Part, reserved: Decimal, incoming: Decimal) -> PartAvailability:
    projected = projected_quantity(part.current_quantity, reserved, incoming)
    return PartAvailability(
        id=part.id,
        customer_id=part.customer_id,
        company_id=part.company_id,
        module=part.module,
        name=part.name,
        part_number=part.part_number,
        unit=part.unit,
        current_quantity=part.current_quantity,
        minimum_quantity=part.minimum_quantity,
        maximum_quantity=part.maximum_quantity,
        cost_price=part.cost_price,
        supplier_id=part.supplier_id,
        is_active=part.is_active,
        version=part.version,
        reserved_quantity=reserved,
        incoming_quantity=incoming,
        projected_quantity=projected,
        is_low_stock=is_low_stock(part),
        is_projected_low=is_projected_low(projected, part.minimum_quantity),
    )


def incoming_confirmed_quantities(db: Session, part_ids: Iterable[int]) -> dict[int, Decimal]:
    """
    SUM(coalesce(qty_shipped, qty_confirmed, 0)) per part, over orders that
    the supplier has confirmed or shipped but that are not received yet.
    """
    part_ids = sorted({int(pid) for pid in part_ids if pid is not None})
    if not part_ids:
        return {}

    rows = db.execute(
        select(
            ReplenishmentOrderItem.part_id,
            func.coalesce(
                func.sum(
                    func.coalesce(
                        ReplenishmentOrderItem.quantity_shipped,
                        ReplenishmentOrderItem.quantity_confirmed,
                        0,
                    )
                ),
                0,
            ).label("incoming_qty"),
        )
        .join(ReplenishmentOrder, ReplenishmentOrder.id == ReplenishmentOrderItem.order_id)
        .where(ReplenishmentOrder.status.in_(INCOMING_ORDER_STATUSES))
        .where(ReplenishmentOrderItem.part_id.in_(part_ids))
        .group_by(ReplenishmentOrderItem.part_id)
    ).all()

    return {int(pid): Decimal(str(qty)) for pid, qty in rows}


def list_parts(
    db: Session,
    customer_id: str,
    module: PartModule | None = None,
    demand: DemandFeed | None = None,
) -> list[PartAvailability]:
    demand = demand or NoDemand()

    stmt = (
        select(Part)
        .where(Part.customer_id == customer_id)
        .where(Part.is_active.is_(True))
        .order_by(Part.name, Part.id)
    )
    if module is not None:
        stmt = stmt.where(Part.module == module)

    parts = db.execute(stmt).scalars().all()
    incoming = incoming_confirmed_quantities(db, [p.id for p in parts])

    return [
        annotate(
            p,
            reserved=demand.reserved_quantity_for(p.id),
            incoming=incoming.get(p.id, Decimal("0")),
        )
        for p in parts
    ]


def list_low_stock_parts(
    db: Session,
    customer_id: str,
    module: PartModule | None = None,
    demand: DemandFeed | None = None,
) -> list[PartAvailability]:
    return [p for p in list_parts(db, customer_id, module, demand) if p.is_low_stock]
