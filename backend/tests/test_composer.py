import re
from datetime import datetime

import pytest

from models.bill import Bill, BillStatus
from models.stock import StockTransaction
from services import composer
from services.composer import RequestedLine
from utils.errors import InsufficientStock, ProductNotFound, ValidationFailed

DUE = datetime(2026, 12, 31)


def test_compose_prices_lines_from_current_product_price(db_session, superadmin, admin, make_product):
    frames = make_product(stock_count=5, price=10.0)
    cases = make_product(stock_count=9, price=2.5)

    composed = composer.compose(
        db_session, admin,
        [RequestedLine(frames.id, 3), RequestedLine(cases.id, 4)],
        superadmin, due_date=DUE, tax=1.5, discount=0.5, notes="monthly",
    )
    bill = composed.bill

    assert [(item.product_id, item.quantity, item.unit_price, item.total_price) for item in bill.items] == [
        (frames.id, 3, 10.0, 30.0),
        (cases.id, 4, 2.5, 10.0),
    ]
    assert bill.subtotal == 40.0
    assert bill.total == 41.0
    assert bill.status == BillStatus.PENDING
    assert bill.admin_id == admin.id
    assert bill.generated_by == superadmin.id
    assert bill.notes == "monthly"
    assert re.fullmatch(r"BILL-\d{13}-1", bill.bill_number)
    assert composed.lines == [(frames, 3), (cases, 4)]


def test_compose_does_not_touch_inventory_or_save_the_bill(db_session, superadmin, admin, product):
    composer.compose(db_session, admin, [RequestedLine(product.id, 2)], superadmin, due_date=DUE)

    assert product.stock_count == 5
    assert db_session.query(StockTransaction).count() == 0
    assert db_session.query(Bill).count() == 0


def test_unit_price_is_a_snapshot(db_session, superadmin, admin, product):
    composed = composer.compose(db_session, admin, [RequestedLine(product.id, 1)], superadmin, due_date=DUE)
    product.price = 99.0

    item = composed.bill.items[0]
    assert item.unit_price == 10.0
    assert item.total_price == item.quantity * item.unit_price


def test_missing_product(db_session, superadmin, admin, product):
    with pytest.raises(ProductNotFound):
        composer.compose(
            db_session, admin, [RequestedLine(product.id, 1), RequestedLine(404, 1)], superadmin, due_date=DUE,
        )


def test_insufficient_stock_carries_details(db_session, superadmin, admin, product):
    with pytest.raises(InsufficientStock) as exc:
        composer.compose(db_session, admin, [RequestedLine(product.id, 6)], superadmin, due_date=DUE)

    assert exc.value.product_name == "Round Frame"
    assert exc.value.available == 5
    assert exc.value.requested == 6
    assert "Available: 5, Requested: 6" in exc.value.message


def test_repeated_product_is_checked_against_combined_quantity(db_session, superadmin, admin, product):
    with pytest.raises(InsufficientStock) as exc:
        composer.compose(
            db_session, admin, [RequestedLine(product.id, 3), RequestedLine(product.id, 3)], superadmin, due_date=DUE,
        )
    assert exc.value.requested == 6


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"tax": -1}, "tax"),
        ({"discount": -0.01}, "discount"),
        ({"discount": 100}, "discount"),
    ],
)
def test_rejects_bad_amounts(db_session, superadmin, admin, product, kwargs, field):
    with pytest.raises(ValidationFailed) as exc:
        composer.compose(db_session, admin, [RequestedLine(product.id, 1)], superadmin, due_date=DUE, **kwargs)
    assert exc.value.field == field


def test_rejects_empty_request_and_bad_quantity(db_session, superadmin, admin, product):
    with pytest.raises(ValidationFailed):
        composer.compose(db_session, admin, [], superadmin, due_date=DUE)

    with pytest.raises(ValidationFailed) as exc:
        composer.compose(db_session, admin, [RequestedLine(product.id, 0)], superadmin, due_date=DUE)
    assert exc.value.field == "items[0].quantity"
