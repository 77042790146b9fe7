from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from stockledger.app.db.models.core_types import (
    OrderPriority,
    OrderSource,
    OrderStatus,
    SkipReason,
)
from stockledger.app.schemas.movement import MovementRead


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    part_id: int
    quantity_requested: Decimal
    quantity_confirmed: Decimal | None
    quantity_shipped: Decimal | None
    quantity_received: Decimal | None
    unit_cost: Decimal


class ReplenishmentOrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: str
    supplier_id: int
    order_number: str
    status: OrderStatus
    source: OrderSource
    priority: OrderPriority
    notes: str | None
    expected_delivery_date: date | None
    invoice_number: str | None
    tracking_code: str | None
    created_at: datetime
    confirmed_at: datetime | None
    shipped_at: datetime | None
    received_at: datetime | None
    received_by: str | None
    received_notes: str | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    items: list[OrderItemRead]


class ReceiptRead(BaseModel):
    order: ReplenishmentOrderRead
    movements: list[MovementRead]


class SkippedPartRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    part_id: int
    name: str
    reason: SkipReason


class FailedSupplierRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    supplier_id: int
    part_ids: list[int]
    error: str


class PlannerSummaryRead(BaseModel):
    orders_created: int
    total_value: Decimal
    message: str
    orders: list[ReplenishmentOrderRead]
    skipped: list[SkippedPartRead]
    failed_suppliers: list[FailedSupplierRead]
