from decimal import Decimal

from sqlalchemy import select

from stockledger.app.db import seed
from stockledger.app.db.models.models_v1 import Part, Supplier
from stockledger.services.inventory import movement_history, replay_quantity


def test_seed_is_rerunnable(db_session, monkeypatch):
    monkeypatch.setattr(seed, "SessionLocal", lambda: db_session)

    seed.run_seed()
    seed.run_seed()

    suppliers = db_session.execute(select(Supplier).where(Supplier.customer_id == seed.CUSTOMER_ID)).scalars().all()
    parts = db_session.execute(select(Part).where(Part.customer_id == seed.CUSTOMER_ID)).scalars().all()
    assert len(suppliers) == 1
    assert len(parts) == 2
    for part in parts:
        history = movement_history(db_session, part.id)
        assert len(history) == 1
        assert replay_quantity(history) == part.current_quantity > Decimal("0")
