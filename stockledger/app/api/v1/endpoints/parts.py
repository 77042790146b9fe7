from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_actor, get_db, get_demand_feed
from stockledger.app.core.config import settings
from stockledger.app.db.models.core_types import MovementType, PartModule
from stockledger.app.db.models.models_v1 import Part, Supplier
from stockledger.app.schemas.part import PartAvailabilityRead, PartRead
from stockledger.services.availability import list_low_stock_parts, list_parts
from stockledger.services.demand import DemandFeed
from stockledger.services.errors import SupplierNotFound
from stockledger.services.inventory import deactivate_part, record_movement, retry_on_conflict, update_part

router = APIRouter()


class PartCreate(BaseModel):
    customer_id: str = Field(min_length=1, max_length=64)
    company_id: str | None = Field(default=None, max_length=64)
    module: PartModule = PartModule.maintenance
    name: str = Field(min_length=1, max_length=255)
    part_number: str | None = Field(default=None, max_length=64)
    unit: str = Field(default="un", min_length=1, max_length=32)
    minimum_quantity: Decimal = Field(default=Decimal("0"), ge=0)
    maximum_quantity: Decimal | None = Field(default=None, ge=0)
    cost_price: Decimal = Field(default=Decimal("0"), ge=0)
    supplier_id: int | None = None
    # posted as an entrada movement, current_quantity always starts at zero
    initial_quantity: Decimal = Field(default=Decimal("0"), ge=0)


class PartUpdate(BaseModel):
    # current_quantity is not editable here, it moves through /adjust-stock
    model_config = ConfigDict(extra="forbid")

    company_id: str | None = Field(default=None, max_length=64)
    module: PartModule | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)
    part_number: str | None = Field(default=None, max_length=64)
    unit: str | None = Field(default=None, min_length=1, max_length=32)
    minimum_quantity: Decimal | None = Field(default=None, ge=0)
    maximum_quantity: Decimal | None = Field(default=None, ge=0)
    cost_price: Decimal | None = Field(default=None, ge=0)
    supplier_id: int | None = None
    expected_version: int | None = None


@router.get("/customers/{customer_id}/parts", response_model=list[PartAvailabilityRead])
def get_parts(
    customer_id: str,
    module: PartModule | None = None,
    db: Session = Depends(get_db),
    demand: DemandFeed = Depends(get_demand_feed),
):
    """
    Parts (READ ONLY)
    - reserved/incoming/projected are derived, never stored
    """
    return list_parts(db, customer_id, module, demand)


@router.get("/customers/{customer_id}/parts/low-stock", response_model=list[PartAvailabilityRead])
def get_low_stock_parts(
    customer_id: str,
    module: PartModule | None = None,
    db: Session = Depends(get_db),
    demand: DemandFeed = Depends(get_demand_feed),
):
    return list_low_stock_parts(db, customer_id, module, demand)


@router.post("/parts", response_model=PartRead, status_code=201)
def create_part(
    payload: PartCreate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    if payload.supplier_id is not None:
        supplier = db.get(Supplier, payload.supplier_id)
        if not supplier or supplier.customer_id != payload.customer_id:
            raise SupplierNotFound(f"Supplier {payload.supplier_id} not found")

    p = Part(
        customer_id=payload.customer_id,
        company_id=payload.company_id,
        module=payload.module,
        name=payload.name,
        part_number=payload.part_number,
        unit=payload.unit,
        current_quantity=Decimal("0"),
        minimum_quantity=payload.minimum_quantity,
        maximum_quantity=payload.maximum_quantity,
        cost_price=payload.cost_price,
        supplier_id=payload.supplier_id,
        is_active=True,
    )
    db.add(p)
    db.flush()  # get p.id

    if payload.initial_quantity > 0:
        record_movement(
            db,
            part_id=p.id,
            movement_type=MovementType.inbound,
            magnitude=payload.initial_quantity,
            reason="Saldo inicial",
            actor=actor,
        )

    db.commit()
    db.refresh(p)
    return p


@router.post("/parts/{part_id}/deactivate", response_model=PartRead)
def deactivate(part_id: int, db: Session = Depends(get_db)):
    part = deactivate_part(db, part_id)
    db.commit()
    db.refresh(part)
    return part


@router.put("/parts/{part_id}", response_model=PartRead)
def edit_part(part_id: int, payload: PartUpdate, db: Session = Depends(get_db)):
    """
    Catalog edit (min/max, cost, default supplier, ...)
    - only fields present in the body are changed; null clears optional ones
    """
    changes = payload.model_dump(exclude_unset=True, exclude={"expected_version"})
    attempts = 1 if payload.expected_version is not None else settings.CONFLICT_RETRY_ATTEMPTS
    part = retry_on_conflict(
        db,
        lambda: update_part(db, part_id, changes, expected_version=payload.expected_version),
        attempts=attempts,
    )
    db.refresh(part)
    return part
