import os

# must be set before stockledger.app.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from stockledger.app.api.deps import get_db  # noqa: E402
from stockledger.app.db.base import Base  # noqa: E402
from stockledger.app.db.models.core_types import MovementType, PartModule  # noqa: E402
from stockledger.app.db.models.models_v1 import Part, Supplier  # noqa: E402
from stockledger.app.db.session import SessionLocal, engine  # noqa: E402
from stockledger.services.inventory import record_movement  # noqa: E402

CUSTOMER_ID = "cust-test"


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    One isolated DB session per test.

    Outer transaction on the connection; every commit() made by the code
    under test only releases a SAVEPOINT. EVERYTHING is rolled back at the end.
    """

    # make sure the schema exists
    Base.metadata.create_all(bind=engine)

    connection = engine.connect()
    transaction = connection.begin()

    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def client(db_session):
    from stockledger.app.main import app

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_supplier(db_session):
    def _make(name="Fornecedor A", customer_id=CUSTOMER_ID):
        s = Supplier(customer_id=customer_id, name=name)
        db_session.add(s)
        db_session.flush()
        return s

    return _make


@pytest.fixture
def make_part(db_session):
    """Part whose stock is posted through the ledger (conservation holds from row one)."""

    def _make(
        name="Filtro",
        *,
        current="0",
        minimum="0",
        maximum=None,
        cost="0",
        supplier=None,
        customer_id=CUSTOMER_ID,
        module=PartModule.maintenance,
    ):
        p = Part(
            customer_id=customer_id,
            module=module,
            name=name,
            current_quantity=Decimal("0"),
            minimum_quantity=Decimal(minimum),
            maximum_quantity=Decimal(maximum) if maximum is not None else None,
            cost_price=Decimal(cost),
            supplier_id=supplier.id if supplier is not None else None,
        )
        db_session.add(p)
        db_session.flush()
        if Decimal(current) > 0:
            record_movement(
                db_session,
                part_id=p.id,
                movement_type=MovementType.inbound,
                magnitude=Decimal(current),
                reason="Saldo inicial",
                actor="test",
            )
        return p

    return _make
