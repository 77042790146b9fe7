from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_actor, get_db
from stockledger.app.core.config import settings
from stockledger.app.db.models.core_types import OrderPriority
from stockledger.app.schemas.movement import MovementRead
from stockledger.app.schemas.replenishment_order import (
    FailedSupplierRead,
    PlannerSummaryRead,
    ReceiptRead,
    ReplenishmentOrderRead,
    SkippedPartRead,
)
from stockledger.services import procurement
from stockledger.services.inventory import retry_on_conflict
from stockledger.services.replenishment import generate_replenishment_orders

router = APIRouter()


# ---------- Schemas ----------
class OrderLineCreate(BaseModel):
    part_id: int
    quantity: Decimal = Field(gt=0)


class OrderCreate(BaseModel):
    customer_id: str = Field(min_length=1, max_length=64)
    supplier_id: int
    priority: OrderPriority = OrderPriority.medium
    notes: str | None = None
    expected_delivery_date: date | None = None
    items: list[OrderLineCreate] = Field(default_factory=list)


class ItemQuantity(BaseModel):
    part_id: int
    quantity: Decimal = Field(ge=0)


class OrderConfirm(BaseModel):
    # omitted parts keep their requested quantity
    items: list[ItemQuantity] = Field(default_factory=list)


class OrderShip(BaseModel):
    tracking_code: str | None = Field(default=None, max_length=128)
    invoice_number: str | None = Field(default=None, max_length=64)
    items: list[ItemQuantity] = Field(default_factory=list)


class OrderCancel(BaseModel):
    reason: str | None = None


class ReceiptConfirm(BaseModel):
    notes: str | None = None


def _quantities(items: list[ItemQuantity]) -> dict[int, Decimal]:
    return {it.part_id: it.quantity for it in items}


# ---------- Endpoints ----------
@router.get("/customers/{customer_id}/replenishment-orders", response_model=list[ReplenishmentOrderRead])
def list_orders(customer_id: str, db: Session = Depends(get_db)):
    return procurement.list_replenishment_orders(db, customer_id)


@router.post("/customers/{customer_id}/auto-replenishment", response_model=PlannerSummaryRead)
def auto_replenishment(customer_id: str, db: Session = Depends(get_db)):
    summary = generate_replenishment_orders(
        db,
        customer_id=customer_id,
        order_number_prefix=settings.ORDER_NUMBER_PREFIX,
        fallback_multiplier=settings.REPLENISHMENT_FALLBACK_MULTIPLIER,
    )
    if summary.orders_created:
        message = f"{summary.orders_created} replenishment order(s) created"
    else:
        message = "No low-stock parts with a supplier to replenish"

    return {
        "orders_created": summary.orders_created,
        "total_value": summary.total_value,
        "message": message,
        "orders": [ReplenishmentOrderRead.model_validate(o) for o in summary.orders],
        "skipped": [SkippedPartRead.model_validate(s) for s in summary.skipped],
        "failed_suppliers": [FailedSupplierRead.model_validate(f) for f in summary.failed_suppliers],
    }


@router.post("/replenishment-orders", response_model=ReplenishmentOrderRead, status_code=201)
def create_order(payload: OrderCreate, db: Session = Depends(get_db)):
    order = procurement.create_order(
        db,
        customer_id=payload.customer_id,
        supplier_id=payload.supplier_id,
        items=[procurement.OrderLine(part_id=ln.part_id, quantity=ln.quantity) for ln in payload.items],
        order_number_prefix=settings.ORDER_NUMBER_PREFIX,
        priority=payload.priority,
        notes=payload.notes,
        expected_delivery_date=payload.expected_delivery_date,
    )
    db.commit()
    return procurement.get_order(db, order.id)


@router.get("/replenishment-orders/{order_id}", response_model=ReplenishmentOrderRead)
def get_order(order_id: int, db: Session = Depends(get_db)):
    return procurement.get_order(db, order_id)


@router.post("/replenishment-orders/{order_id}/confirm", response_model=ReplenishmentOrderRead)
def confirm_order(order_id: int, payload: OrderConfirm, db: Session = Depends(get_db)):
    retry_on_conflict(
        db,
        lambda: procurement.confirm_order(db, order_id=order_id, quantities=_quantities(payload.items)),
        attempts=settings.CONFLICT_RETRY_ATTEMPTS,
    )
    return procurement.get_order(db, order_id)


@router.post("/replenishment-orders/{order_id}/ship", response_model=ReplenishmentOrderRead)
def ship_order(order_id: int, payload: OrderShip, db: Session = Depends(get_db)):
    retry_on_conflict(
        db,
        lambda: procurement.ship_order(
            db,
            order_id=order_id,
            tracking_code=payload.tracking_code,
            invoice_number=payload.invoice_number,
            quantities=_quantities(payload.items),
        ),
        attempts=settings.CONFLICT_RETRY_ATTEMPTS,
    )
    return procurement.get_order(db, order_id)


@router.post("/replenishment-orders/{order_id}/cancel", response_model=ReplenishmentOrderRead)
def cancel_order(order_id: int, payload: OrderCancel, db: Session = Depends(get_db)):
    retry_on_conflict(
        db,
        lambda: procurement.cancel_order(db, order_id=order_id, reason=payload.reason),
        attempts=settings.CONFLICT_RETRY_ATTEMPTS,
    )
    return procurement.get_order(db, order_id)


@router.post("/replenishment-orders/{order_id}/confirm-receipt", response_model=ReceiptRead)
def confirm_receipt(
    order_id: int,
    payload: ReceiptConfirm,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    result = retry_on_conflict(
        db,
        lambda: procurement.confirm_receipt(db, order_id=order_id, notes=payload.notes, actor=actor),
        attempts=settings.CONFLICT_RETRY_ATTEMPTS,
    )
    return {
        "order": ReplenishmentOrderRead.model_validate(procurement.get_order(db, order_id)),
        "movements": [MovementRead.model_validate(mv) for mv in result.movements],
    }
