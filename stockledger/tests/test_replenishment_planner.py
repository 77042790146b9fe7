from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from stockledger.app.db.models.core_types import OrderSource, OrderStatus, SkipReason
from stockledger.app.db.models.models_v1 import Part, ReplenishmentOrder
from stockledger.app.core.config import Settings
from stockledger.services import replenishment
from stockledger.services.errors import InvalidMagnitude
from stockledger.services.replenishment import (
    generate_replenishment_orders,
    refill_target,
    requested_quantity,
)

from conftest import CUSTOMER_ID


def _orders(db):
    return db.execute(select(ReplenishmentOrder).order_by(ReplenishmentOrder.id)).scalars().all()


def test_refill_target_uses_maximum_when_set():
    part = Part(current_quantity=Decimal("5"), minimum_quantity=Decimal("10"), maximum_quantity=Decimal("100"))
    assert refill_target(part) == Decimal("100")
    assert requested_quantity(part) == Decimal("95")


def test_refill_target_never_below_minimum():
    part = Part(current_quantity=Decimal("2"), minimum_quantity=Decimal("10"), maximum_quantity=Decimal("6"))
    assert requested_quantity(part) == Decimal("8")


def test_refill_target_fallback_without_maximum():
    part = Part(current_quantity=Decimal("3"), minimum_quantity=Decimal("10"), maximum_quantity=None)
    assert refill_target(part) == Decimal("20")
    assert requested_quantity(part, Decimal("3")) == Decimal("27")


def test_grouping_by_supplier(db_session, make_part, make_supplier):
    """
    GIVEN
    - A, B: supplier S1, low stock
    - C: no supplier, low stock
    - D: supplier S2, stock fine
    THEN
    - one order for S1 with items A and B
    - no order for S2
    - C reported as skipped
    """
    s1 = make_supplier("S1")
    s2 = make_supplier("S2")
    a = make_part("A", current="1", minimum="5", maximum="10", supplier=s1)
    b = make_part("B", current="0", minimum="2", maximum="4", supplier=s1)
    c = make_part("C", current="0", minimum="3")
    make_part("D", current="50", minimum="5", supplier=s2)
    db_session.commit()

    summary = generate_replenishment_orders(db_session, customer_id=CUSTOMER_ID, order_number_prefix="T")

    assert summary.orders_created == 1
    orders = _orders(db_session)
    assert len(orders) == 1
    order = orders[0]
    assert order.supplier_id == s1.id
    assert order.status == OrderStatus.pending
    assert order.source == OrderSource.auto_generated
    assert {(i.part_id, i.quantity_requested) for i in order.items} == {
        (a.id, Decimal("9")),
        (b.id, Decimal("4")),
    }
    assert [(s.part_id, s.reason) for s in summary.skipped] == [(c.id, SkipReason.supplier_missing)]
    assert summary.failed_suppliers == []


def test_sizing_and_total_value(db_session, make_part, make_supplier):
    s1 = make_supplier("S1")
    part = make_part("Filtro", current="5", minimum="10", maximum="100", cost="2.00", supplier=s1)
    db_session.commit()

    summary = generate_replenishment_orders(db_session, customer_id=CUSTOMER_ID, order_number_prefix="T")

    assert summary.orders_created == 1
    assert summary.total_value == Decimal("190.00")
    item = summary.orders[0].items[0]
    assert item.part_id == part.id
    assert item.quantity_requested == Decimal("95")
    assert item.unit_cost == Decimal("2.00")


def test_inactive_and_other_customers_ignored(db_session, make_part, make_supplier):
    s1 = make_supplier("S1")
    other = make_supplier("S1", customer_id="other")
    make_part("Outro", current="0", minimum="5", supplier=other, customer_id="other")
    inactive = make_part("Inativa", current="0", minimum="5", supplier=s1)
    inactive.is_active = False
    db_session.commit()

    summary = generate_replenishment_orders(db_session, customer_id=CUSTOMER_ID, order_number_prefix="T")

    assert summary.orders_created == 0
    assert summary.total_value == Decimal("0")
    assert _orders(db_session) == []


def test_not_idempotent_creates_duplicates(db_session, make_part, make_supplier):
    s1 = make_supplier("S1")
    make_part("A", current="0", minimum="5", supplier=s1)
    db_session.commit()

    generate_replenishment_orders(db_session, customer_id=CUSTOMER_ID, order_number_prefix="T")
    generate_replenishment_orders(db_session, customer_id=CUSTOMER_ID, order_number_prefix="T")

    orders = _orders(db_session)
    assert len(orders) == 2
    assert orders[0].order_number != orders[1].order_number


def test_failure_for_one_supplier_does_not_block_others(db_session, make_part, make_supplier, monkeypatch):
    s1 = make_supplier("S1")
    s2 = make_supplier("S2")
    a = make_part("A", current="0", minimum="5", supplier=s1)
    b = make_part("B", current="0", minimum="5", supplier=s2)
    db_session.commit()

    real_add_order = replenishment.add_order

    def _flaky_add_order(db, **kwargs):
        if kwargs["supplier_id"] == s1.id:
            raise SQLAlchemyError("supplier S1 insert failed")
        return real_add_order(db, **kwargs)

    monkeypatch.setattr(replenishment, "add_order", _flaky_add_order)

    summary = generate_replenishment_orders(db_session, customer_id=CUSTOMER_ID, order_number_prefix="T")

    assert summary.orders_created == 1
    assert [f.supplier_id for f in summary.failed_suppliers] == [s1.id]
    assert summary.failed_suppliers[0].part_ids == [a.id]
    orders = _orders(db_session)
    assert [o.supplier_id for o in orders] == [s2.id]
    assert orders[0].items[0].part_id == b.id


def test_multiplier_below_one_is_rejected(db_session, make_part, make_supplier):
    """
    GIVEN min=10, current=6, no maximum and a 0.5 multiplier (target 5 < current)
    THEN the run is refused instead of dropping the part from the summary
    """
    s1 = make_supplier("S1")
    make_part("A", current="6", minimum="10", supplier=s1)
    db_session.commit()

    with pytest.raises(InvalidMagnitude):
        generate_replenishment_orders(
            db_session,
            customer_id=CUSTOMER_ID,
            order_number_prefix="T",
            fallback_multiplier=Decimal("0.5"),
        )
    assert _orders(db_session) == []


def test_multiplier_of_one_still_orders_every_low_part(db_session, make_part, make_supplier):
    s1 = make_supplier("S1")
    part = make_part("A", current="6", minimum="10", supplier=s1)
    db_session.commit()

    summary = generate_replenishment_orders(
        db_session,
        customer_id=CUSTOMER_ID,
        order_number_prefix="T",
        fallback_multiplier=Decimal("1"),
    )

    assert summary.orders_created == 1
    assert summary.skipped == []
    item = summary.orders[0].items[0]
    assert (item.part_id, item.quantity_requested) == (part.id, Decimal("4"))


def test_settings_reject_multiplier_below_one():
    with pytest.raises(ValidationError):
        Settings(REPLENISHMENT_FALLBACK_MULTIPLIER=Decimal("0.5"))
    assert Settings(REPLENISHMENT_FALLBACK_MULTIPLIER=Decimal("1")).REPLENISHMENT_FALLBACK_MULTIPLIER == Decimal("1")


def test_group_is_sized_from_rows_read_under_lock(db_session, make_part, make_supplier, monkeypatch):
    """
    GIVEN A (current 1) and B (current 0) low at scan time, both on S1
    WHEN stock moves before the S1 group locks its rows (A -> 3, B -> 5)
    THEN A is ordered from 3, B is reported as changed and the value matches the order
    """
    s1 = make_supplier("S1")
    a = make_part("A", current="1", minimum="5", maximum="10", cost="2.00", supplier=s1)
    b = make_part("B", current="0", minimum="2", maximum="4", cost="3.00", supplier=s1)
    db_session.commit()

    real_lock_parts = replenishment._lock_parts

    def _moved_before_lock(db, part_ids):
        for part_id, qty in ((a.id, Decimal("3")), (b.id, Decimal("5"))):
            db.execute(
                update(Part)
                .where(Part.id == part_id)
                .values(current_quantity=qty, version=Part.version + 1)
                .execution_options(synchronize_session=False)
            )
        return real_lock_parts(db, part_ids)

    monkeypatch.setattr(replenishment, "_lock_parts", _moved_before_lock)

    summary = generate_replenishment_orders(db_session, customer_id=CUSTOMER_ID, order_number_prefix="T")

    assert summary.orders_created == 1
    items = summary.orders[0].items
    assert [(i.part_id, i.quantity_requested) for i in items] == [(a.id, Decimal("7"))]
    assert summary.total_value == Decimal("14.00")
    assert [(s.part_id, s.reason) for s in summary.skipped] == [(b.id, SkipReason.changed_during_run)]


def test_group_emptied_under_lock_creates_no_order(db_session, make_part, make_supplier, monkeypatch):
    s1 = make_supplier("S1")
    a = make_part("A", current="1", minimum="5", supplier=s1)
    db_session.commit()

    real_lock_parts = replenishment._lock_parts

    def _refilled_before_lock(db, part_ids):
        db.execute(
            update(Part)
            .where(Part.id == a.id)
            .values(current_quantity=Decimal("50"), version=Part.version + 1)
            .execution_options(synchronize_session=False)
        )
        return real_lock_parts(db, part_ids)

    monkeypatch.setattr(replenishment, "_lock_parts", _refilled_before_lock)

    summary = generate_replenishment_orders(db_session, customer_id=CUSTOMER_ID, order_number_prefix="T")

    assert summary.orders_created == 0
    assert _orders(db_session) == []
    assert [(s.part_id, s.reason) for s in summary.skipped] == [(a.id, SkipReason.changed_during_run)]
