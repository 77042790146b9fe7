from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from stockledger.app.db.models.core_types import PartModule


class PartRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: str
    company_id: str | None
    module: PartModule
    name: str
    part_number: str | None
    unit: str
    current_quantity: Decimal  # READ ONLY: changed through /adjust-stock only
    minimum_quantity: Decimal
    maximum_quantity: Decimal | None
    cost_price: Decimal
    supplier_id: int | None
    is_active: bool
    version: int


class PartAvailabilityRead(PartRead):
    reserved_quantity: Decimal
    incoming_quantity: Decimal
    projected_quantity: Decimal
    is_low_stock: bool
    is_projected_low: bool
