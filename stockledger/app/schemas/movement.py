from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from stockledger.app.db.models.core_types import MovementType
from stockledger.app.schemas.part import PartRead


class MovementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    part_id: int
    movement_type: MovementType
    quantity: Decimal
    previous_quantity: Decimal
    new_quantity: Decimal
    reason: str | None
    actor: str
    order_id: int | None
    created_at: datetime


class StockAdjustmentRead(BaseModel):
    movement: MovementRead
    part: PartRead
