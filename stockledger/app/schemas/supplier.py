from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SupplierRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: str
    name: str
    contact_name: str | None
    email: str | None
    phone: str | None
    is_active: bool
