from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select

from stockledger.app.db.session import SessionLocal
from stockledger.app.db.models.core_types import MovementType, PartModule
from stockledger.app.db.models.models_v1 import Part, Supplier
from stockledger.services.inventory import record_movement

CUSTOMER_ID = "demo"


def run_seed():
    db = SessionLocal()
    try:
        # 1) Supplier
        supplier = db.scalar(
            select(Supplier).where(Supplier.customer_id == CUSTOMER_ID, Supplier.name == "Distribuidora Central")
        )
        if not supplier:
            supplier = Supplier(customer_id=CUSTOMER_ID, name="Distribuidora Central", email="vendas@example.com")
            db.add(supplier)
            db.flush()

        # 2) Parts, stock posted through the ledger like any other entrada
        catalog = [
            ("Filtro de ar G4", PartModule.maintenance, Decimal("10"), Decimal("100"), Decimal("2.00"), Decimal("5")),
            ("Detergente neutro 5L", PartModule.clean, Decimal("4"), None, Decimal("18.90"), Decimal("12")),
        ]
        for name, module, minimum, maximum, cost, initial in catalog:
            if db.scalar(select(Part).where(Part.customer_id == CUSTOMER_ID, Part.name == name)):
                continue
            part = Part(
                customer_id=CUSTOMER_ID,
                module=module,
                name=name,
                minimum_quantity=minimum,
                maximum_quantity=maximum,
                cost_price=cost,
                supplier_id=supplier.id,
            )
            db.add(part)
            db.flush()
            record_movement(
                db,
                part_id=part.id,
                movement_type=MovementType.inbound,
                magnitude=initial,
                reason="Saldo inicial",
                actor="seed",
            )

        db.commit()
        print(f"SEED OK: customer={CUSTOMER_ID}")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
