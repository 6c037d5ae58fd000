# backend/services/billing.py
"""
Billing workflow: admin stock allocation turned into a bill.

generate_bill runs compose, one ledger debit per line and the bill insert
as a single database transaction. If any step fails the whole allocation
is rolled back, so earlier lines of the same request are never left
debited without a bill.
"""
import logging
from datetime import datetime
from typing import Dict, Optional, Sequence

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from database import commit
from models.bill import Bill, BillItem, BillStatus
from models.users import User
from services import composer, ledger
from services.composer import RequestedLine
from utils.errors import (
    AdminNotFound,
    BillNotFound,
    InvalidStatusTransition,
    PersistenceFailed,
    StockBillingError,
    ValidationFailed,
)
from utils.permissions import ADMIN

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    BillStatus.PENDING: {BillStatus.PAID, BillStatus.OVERDUE, BillStatus.CANCELLED},
    BillStatus.OVERDUE: {BillStatus.PAID, BillStatus.CANCELLED},
    BillStatus.PAID: set(),
    BillStatus.CANCELLED: set(),
}


def allocation_label(admin: User) -> str:
    return f"Admin: {admin.full_name}"


def get_target_admin(db: Session, admin_id: int) -> User:
    admin = db.query(User).filter(User.id == admin_id).first()
    if admin is None or (admin.role or "").lower() != ADMIN:
        raise AdminNotFound(admin_id)
    return admin


def load_bill(db: Session, bill_id: int) -> Bill:
    bill = (
        db.query(Bill)
        .options(
            joinedload(Bill.items).joinedload(BillItem.product),
            joinedload(Bill.admin),
            joinedload(Bill.generator),
        )
        .filter(Bill.id == bill_id)
        .first()
    )
    if bill is None:
        raise BillNotFound(bill_id)
    return bill


def generate_bill(
    db: Session,
    admin_id: int,
    requested_lines: Sequence[RequestedLine],
    due_date: datetime,
    actor: User,
    tax: float = 0,
    discount: float = 0,
    notes: Optional[str] = None,
) -> Bill:
    try:
        admin = get_target_admin(db, admin_id)
        composed = composer.compose(
            db, admin, requested_lines, actor,
            due_date=due_date, tax=tax, discount=discount, notes=notes,
        )

        label = allocation_label(admin)
        for product, quantity in composed.lines:
            ledger.debit_for_allocation(db, product, quantity, actor, label)

        db.add(composed.bill)
        db.flush()
    except StockBillingError as exc:
        db.rollback()
        logger.warning("Bill generation for admin %s failed: %s", admin_id, exc.message)
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Bill generation for admin %s failed in the database", admin_id)
        raise PersistenceFailed("Could not save bill", reason=exc.__class__.__name__) from exc

    bill_id = composed.bill.id
    commit(db)
    logger.info("Generated %s for admin %s, total %s", composed.bill.bill_number, admin_id, composed.bill.total)
    return load_bill(db, bill_id)


def update_bill_status(db: Session, bill_id: int, status) -> Bill:
    try:
        new_status = BillStatus(status)
    except ValueError:
        raise ValidationFailed(f"Unknown bill status: {status}", field="status") from None

    bill = load_bill(db, bill_id)
    if bill.status == new_status:
        return bill
    if new_status not in ALLOWED_TRANSITIONS[bill.status]:
        raise InvalidStatusTransition(bill.status.value, new_status.value)

    previous = bill.status
    bill.status = new_status
    commit(db)
    logger.info("Bill %s status %s -> %s", bill.bill_number, previous.value, new_status.value)
    return load_bill(db, bill_id)


def billing_summary(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> Dict:
    filters = []
    if start is not None:
        filters.append(Bill.created_at >= start)
    if end is not None:
        filters.append(Bill.created_at <= end)

    def amount_for(status):
        return func.coalesce(func.sum(case((Bill.status == status, Bill.total), else_=0)), 0)

    row = db.query(
        func.count(Bill.id),
        func.coalesce(func.sum(Bill.total), 0),
        amount_for(BillStatus.PAID),
        amount_for(BillStatus.PENDING),
        amount_for(BillStatus.OVERDUE),
    ).filter(*filters).one()

    status_counts = (
        db.query(Bill.status, func.count(Bill.id))
        .filter(*filters)
        .group_by(Bill.status)
        .all()
    )

    return {
        "summary": {
            "total_bills": row[0],
            "total_amount": float(row[1]),
            "paid_amount": float(row[2]),
            "pending_amount": float(row[3]),
            "overdue_amount": float(row[4]),
        },
        "status_counts": [
            {"status": status.value, "count": count} for status, count in status_counts
        ],
    }
