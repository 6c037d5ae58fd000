# backend/services/sequence.py
import logging
import time

from sqlalchemy.orm import Session

from models.bill import Bill
from models.sequence import SequenceCounter

logger = logging.getLogger(__name__)

BILL_SEQUENCE = "bill"


def lock_for_update(query):
    """
    Apply row-level locking for read-modify-write sections.

    PostgreSQL and MySQL honour SELECT ... FOR UPDATE. SQLite ignores it;
    file databases get a write lock per transaction from database.make_engine
    instead. populate_existing makes the locked read overwrite whatever
    stale copy the session already holds.
    """
    return query.with_for_update().populate_existing()


def _seed_value(db: Session, name: str) -> int:
    # Start the bill counter where a plain count of bills would have put it
    if name == BILL_SEQUENCE:
        return db.query(Bill).count()
    return 0


def next_value(db: Session, name: str) -> int:
    """
    Draw the next value of a named counter inside the caller's transaction.

    The counter row stays locked until the caller commits or rolls back, so
    two concurrent generations can never see the same value. A rolled back
    transaction gives its value back. If two transactions race to create
    the counter row, the unique name makes the loser fail at flush.
    """
    counter = lock_for_update(
        db.query(SequenceCounter).filter(SequenceCounter.name == name)
    ).first()

    if counter is None:
        counter = SequenceCounter(name=name, current_value=_seed_value(db, name))
        db.add(counter)

    counter.current_value += 1
    db.flush()
    logger.debug("Sequence %s advanced to %s", name, counter.current_value)
    return counter.current_value


def next_bill_number(db: Session, now_ms: int = None) -> str:
    """Return a fresh ``BILL-<millisecond epoch>-<sequence>`` number."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"BILL-{now_ms}-{next_value(db, BILL_SEQUENCE)}"
