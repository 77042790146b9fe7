from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db
from stockledger.app.db.models.models_v1 import Supplier
from stockledger.app.schemas.supplier import SupplierRead

router = APIRouter(prefix="/suppliers")


class SupplierCreate(BaseModel):
    customer_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    contact_name: str | None = Field(default=None, max_length=200)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=32)


@router.get("", response_model=list[SupplierRead])
def list_suppliers(customer_id: str | None = None, db: Session = Depends(get_db)):
    stmt = select(Supplier).order_by(Supplier.name)
    if customer_id is not None:
        stmt = stmt.where(Supplier.customer_id == customer_id)
    return db.execute(stmt).scalars().all()


@router.post("", response_model=SupplierRead, status_code=201)
def create_supplier(payload: SupplierCreate, db: Session = Depends(get_db)):
    exists = db.execute(
        select(Supplier)
        .where(Supplier.customer_id == payload.customer_id)
        .where(Supplier.name == payload.name)
    ).scalar_one_or_none()
    if exists:
        raise HTTPException(status_code=409, detail="Supplier already exists")

    s = Supplier(
        customer_id=payload.customer_id,
        name=payload.name,
        contact_name=payload.contact_name,
        email=payload.email,
        phone=payload.phone,
    )
    db.add(s)
    db.commit()
    db.refresh(s)
    return s
