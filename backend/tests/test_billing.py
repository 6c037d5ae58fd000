import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from threading import Barrier

import pytest
from sqlalchemy.orm import sessionmaker

from database import Base, make_engine
from models.bill import Bill, BillStatus
from models.product import Product
from models.stock import StockTransaction, TransactionType
from models.users import User
from services import billing
from services.composer import RequestedLine
from utils.errors import (
    AdminNotFound,
    BillNotFound,
    ImmutableRecord,
    InsufficientStock,
    InvalidStatusTransition,
    ValidationFailed,
)

DUE = datetime(2026, 12, 31)


def _generate(db, admin, actor, lines, **kwargs):
    return billing.generate_bill(db, admin.id, lines, DUE, actor, **kwargs)


def test_allocation_scenario(db_session, superadmin, admin, product):
    bill = _generate(db_session, admin, superadmin, [RequestedLine(product.id, 3)])

    assert bill.id is not None
    assert bill.total == 30
    assert bill.subtotal == 30
    assert bill.status == BillStatus.PENDING
    assert bill.admin.username == "ada"
    assert bill.generator.username == "root"
    assert bill.items[0].product.sku == product.sku
    assert re.fullmatch(r"BILL-\d{13}-1", bill.bill_number)

    assert db_session.get(Product, product.id).stock_count == 2
    transactions = db_session.query(StockTransaction).all()
    assert len(transactions) == 1
    txn = transactions[0]
    assert txn.type == TransactionType.OUT
    assert (txn.quantity, txn.previous_stock, txn.new_stock) == (3, 5, 2)
    assert txn.reason == "Admin stock allocation"
    assert txn.reference == "Admin: Ada Admin"
    assert txn.performed_by == superadmin.id

    # Second request for more than what is left
    with pytest.raises(InsufficientStock) as exc:
        _generate(db_session, admin, superadmin, [RequestedLine(product.id, 5)])

    assert exc.value.available == 2
    assert exc.value.requested == 5
    assert db_session.get(Product, product.id).stock_count == 2
    assert db_session.query(StockTransaction).count() == 1
    assert db_session.query(Bill).count() == 1


def test_totals_follow_subtotal_tax_and_discount(db_session, superadmin, admin, make_product):
    a = make_product(stock_count=10, price=10.0)
    b = make_product(stock_count=10, price=4.0)

    bill = _generate(
        db_session, admin, superadmin, [RequestedLine(a.id, 2), RequestedLine(b.id, 5)],
        tax=3, discount=1, notes="Q3 allocation",
    )

    assert bill.subtotal == sum(item.total_price for item in bill.items) == 40
    for item in bill.items:
        assert item.total_price == item.quantity * item.unit_price
    assert bill.total == bill.subtotal + bill.tax - bill.discount == 42
    assert [item.product_id for item in bill.items] == [a.id, b.id]
    assert bill.notes == "Q3 allocation"


def test_failed_debit_rolls_back_earlier_lines(db_session, superadmin, admin, make_product, monkeypatch):
    first = make_product(stock_count=5)
    second = make_product(stock_count=1)
    real_compose = billing.composer.compose

    def compose_then_lose_race(*args, **kwargs):
        composed = real_compose(*args, **kwargs)
        # Another allocation takes the last unit between pricing and debiting
        db_session.query(Product).filter(Product.id == second.id).update(
            {Product.stock_count: 0}, synchronize_session=False
        )
        return composed

    monkeypatch.setattr(billing.composer, "compose", compose_then_lose_race)

    with pytest.raises(InsufficientStock) as exc:
        _generate(db_session, admin, superadmin, [RequestedLine(first.id, 3), RequestedLine(second.id, 1)])

    assert exc.value.available == 0
    assert db_session.get(Product, first.id).stock_count == 5
    assert db_session.get(Product, second.id).stock_count == 1
    assert db_session.query(StockTransaction).count() == 0
    assert db_session.query(Bill).count() == 0


@pytest.mark.parametrize("target", ["superadmin", "plain_user", "missing"])
def test_target_must_be_an_admin(db_session, request, superadmin, product, target):
    admin_id = 999 if target == "missing" else request.getfixturevalue(target).id

    with pytest.raises(AdminNotFound):
        billing.generate_bill(db_session, admin_id, [RequestedLine(product.id, 1)], DUE, superadmin)

    assert db_session.get(Product, product.id).stock_count == 5
    assert db_session.query(StockTransaction).count() == 0


def test_bill_numbers_are_unique_and_sequential(db_session, superadmin, admin, make_product):
    product = make_product(stock_count=100)

    numbers = [
        _generate(db_session, admin, superadmin, [RequestedLine(product.id, 1)]).bill_number
        for _ in range(5)
    ]

    assert len(set(numbers)) == 5
    assert [int(number.rsplit("-", 1)[1]) for number in numbers] == [1, 2, 3, 4, 5]


def test_failed_generation_does_not_consume_a_number(db_session, superadmin, admin, product):
    with pytest.raises(InsufficientStock):
        _generate(db_session, admin, superadmin, [RequestedLine(product.id, 50)])

    bill = _generate(db_session, admin, superadmin, [RequestedLine(product.id, 1)])
    assert bill.bill_number.endswith("-1")


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file database so every thread gets its own connection."""
    file_engine = make_engine(f"sqlite:///{tmp_path / 'bills.db'}")
    Base.metadata.create_all(bind=file_engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    finally:
        file_engine.dispose()


def test_concurrent_generations_get_unique_numbers(file_session_factory):
    num_threads = 8
    with file_session_factory() as setup:
        actor = User(username="root", email="root@example.com", password_hash="x", role="superadmin",
                     first_name="Sam", last_name="Super")
        target = User(username="ada", email="ada@example.com", password_hash="x", role="admin",
                      first_name="Ada", last_name="Admin")
        stocked = Product(name="Round Frame", sku="SKU-0001", price=10.0, stock_count=20)
        setup.add_all([actor, target, stocked])
        setup.commit()
        actor_id, admin_id, product_id = actor.id, target.id, stocked.id

    barrier = Barrier(num_threads, timeout=30)

    def allocate(_):
        barrier.wait()
        session = file_session_factory()
        try:
            bill = billing.generate_bill(
                session, admin_id, [RequestedLine(product_id, 1)], DUE, session.get(User, actor_id),
            )
            return bill.bill_number
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=num_threads) as executor:
        futures = [executor.submit(allocate, i) for i in range(num_threads)]
        # result() re-raises anything a thread hit
        numbers = [f.result() for f in futures]

    assert len(set(numbers)) == num_threads
    assert sorted(int(n.rsplit("-", 1)[1]) for n in numbers) == list(range(1, num_threads + 1))

    with file_session_factory() as check:
        assert check.get(Product, product_id).stock_count == 20 - num_threads
        assert check.query(Bill).count() == num_threads
        outs = check.query(StockTransaction).filter(StockTransaction.type == TransactionType.OUT).all()
        assert len(outs) == num_threads
        assert sorted(t.previous_stock for t in outs) == list(range(20 - num_threads + 1, 21))


def test_status_transitions(db_session, superadmin, admin, product):
    bill = _generate(db_session, admin, superadmin, [RequestedLine(product.id, 1)])

    bill = billing.update_bill_status(db_session, bill.id, "OVERDUE")
    assert bill.status == BillStatus.OVERDUE

    # Same status again is accepted as is
    assert billing.update_bill_status(db_session, bill.id, BillStatus.OVERDUE).status == BillStatus.OVERDUE

    bill = billing.update_bill_status(db_session, bill.id, BillStatus.PAID)
    assert bill.status == BillStatus.PAID

    with pytest.raises(InvalidStatusTransition) as exc:
        billing.update_bill_status(db_session, bill.id, "PENDING")
    assert exc.value.code == "INVALID_STATUS_TRANSITION"
    assert exc.value.status_code == 409


def test_status_update_errors(db_session, superadmin, admin, product):
    bill = _generate(db_session, admin, superadmin, [RequestedLine(product.id, 1)])

    with pytest.raises(ValidationFailed):
        billing.update_bill_status(db_session, bill.id, "LOST")

    with pytest.raises(BillNotFound):
        billing.update_bill_status(db_session, 12345, "PAID")


def test_bill_amounts_are_immutable(db_session, superadmin, admin, product):
    bill = _generate(db_session, admin, superadmin, [RequestedLine(product.id, 1)])

    bill.total = 0
    with pytest.raises(ImmutableRecord):
        db_session.flush()
    db_session.rollback()


def test_billing_summary(db_session, superadmin, admin, other_admin, make_product):
    product = make_product(stock_count=100, price=10.0)
    paid = _generate(db_session, admin, superadmin, [RequestedLine(product.id, 1)])
    _generate(db_session, other_admin, superadmin, [RequestedLine(product.id, 2)])
    overdue = _generate(db_session, admin, superadmin, [RequestedLine(product.id, 4)])
    billing.update_bill_status(db_session, paid.id, "PAID")
    billing.update_bill_status(db_session, overdue.id, "OVERDUE")

    result = billing.billing_summary(db_session)

    assert result["summary"] == {
        "total_bills": 3,
        "total_amount": 70.0,
        "paid_amount": 10.0,
        "pending_amount": 20.0,
        "overdue_amount": 40.0,
    }
    counts = {row["status"]: row["count"] for row in result["status_counts"]}
    assert counts == {"PAID": 1, "PENDING": 1, "OVERDUE": 1}

    empty = billing.billing_summary(db_session, end=datetime(2000, 1, 1))
    assert empty["summary"]["total_bills"] == 0
    assert empty["status_counts"] == []
