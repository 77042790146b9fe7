from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_actor, get_db
from stockledger.app.core.config import settings
from stockledger.app.db.models.core_types import MovementType
from stockledger.app.db.models.models_v1 import Part
from stockledger.app.schemas.movement import MovementRead, StockAdjustmentRead
from stockledger.app.schemas.part import PartRead
from stockledger.services.inventory import movement_history, record_movement, retry_on_conflict

router = APIRouter(prefix="/parts")


# ---------- Schemas ----------
class StockAdjust(BaseModel):
    movement_type: MovementType
    # delta for entrada/saida, new absolute quantity for ajuste
    quantity: Decimal
    reason: str | None = Field(default=None, max_length=255)
    # compare-and-swap: reject instead of retrying when the part moved on
    expected_version: int | None = None


# ---------- Endpoints ----------
@router.post("/{part_id}/adjust-stock", response_model=StockAdjustmentRead)
def adjust_stock(
    part_id: int,
    payload: StockAdjust,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    def _post():
        return record_movement(
            db,
            part_id=part_id,
            movement_type=payload.movement_type,
            magnitude=payload.quantity,
            reason=payload.reason,
            actor=actor,
            expected_version=payload.expected_version,
        )

    # a client-supplied version is a precondition, retrying would defeat it
    attempts = 1 if payload.expected_version is not None else settings.CONFLICT_RETRY_ATTEMPTS
    mv = retry_on_conflict(db, _post, attempts=attempts)

    part = db.get(Part, part_id)
    return {
        "movement": MovementRead.model_validate(mv),
        "part": PartRead.model_validate(part),
    }


@router.get("/{part_id}/movements", response_model=list[MovementRead])
def list_movements(part_id: int, db: Session = Depends(get_db)):
    return movement_history(db, part_id)
