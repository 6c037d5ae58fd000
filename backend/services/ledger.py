# backend/services/ledger.py
"""
Stock ledger: the only code that changes Product.stock_count.

Every operation changes exactly one product and appends exactly one
StockTransaction in the caller's session. Nothing here commits; the caller
commits once so the stock write and its audit row land together.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from models.product import Product
from models.stock import StockTransaction, TransactionType
from models.users import User
from services.sequence import lock_for_update
from utils.errors import InsufficientStock, ProductNotFound, ValidationFailed

logger = logging.getLogger(__name__)

ALLOCATION_REASON = "Admin stock allocation"


def _require_int(value, field: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailed(f"{field} must be an integer", field=field)
    if value < minimum:
        raise ValidationFailed(f"{field} must be at least {minimum}", field=field)
    return value


def _require_reason(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise ValidationFailed("reason is required", field="reason")
    return reason.strip()


def get_product(db: Session, product_id: int, lock: bool = False) -> Product:
    query = db.query(Product).filter(Product.id == product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise ProductNotFound(product_id)
    return product


def _record(
    db: Session,
    product: Product,
    type_: TransactionType,
    quantity: int,
    previous_stock: int,
    new_stock: int,
    reason: str,
    actor: User,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> StockTransaction:
    transaction = StockTransaction(
        product_id=product.id,
        type=type_,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reason=reason,
        reference=reference,
        notes=notes,
        performed_by=actor.id,
    )
    db.add(transaction)
    db.flush()
    logger.info(
        "Stock %s for product %s (%s): %s -> %s by user %s",
        type_.value, product.id, product.sku, previous_stock, new_stock, actor.id,
    )
    return transaction


def _set_stock(
    db: Session,
    product_id: int,
    type_: TransactionType,
    target,
    reason: str,
    actor: User,
    reference: Optional[str],
    notes: Optional[str],
) -> Tuple[int, StockTransaction]:
    # target(previous) -> (new_stock, recorded quantity)
    product = get_product(db, product_id, lock=True)
    previous_stock = product.stock_count
    new_stock, quantity = target(previous_stock)

    product.stock_count = new_stock
    db.flush()

    transaction = _record(db, product, type_, quantity, previous_stock, new_stock, reason, actor, reference, notes)
    return new_stock, transaction


def increase(
    db: Session,
    product_id: int,
    quantity: int,
    reason: str,
    actor: User,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> Tuple[int, StockTransaction]:
    """Add ``quantity`` units. Returns the new stock count and the IN transaction."""
    quantity = _require_int(quantity, "quantity", 1)
    reason = _require_reason(reason)
    return _set_stock(
        db, product_id, TransactionType.IN,
        lambda previous: (previous + quantity, quantity),
        reason, actor, reference, notes,
    )


def decrease(
    db: Session,
    product_id: int,
    quantity: int,
    reason: str,
    actor: User,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> Tuple[int, StockTransaction]:
    """
    Remove ``quantity`` units, clamping at zero.

    Removing more than is on hand is not an error here; the stock simply
    drops to 0 and the OUT transaction keeps the requested quantity.
    """
    quantity = _require_int(quantity, "quantity", 1)
    reason = _require_reason(reason)
    return _set_stock(
        db, product_id, TransactionType.OUT,
        lambda previous: (max(0, previous - quantity), quantity),
        reason, actor, reference, notes,
    )


def adjust(
    db: Session,
    product_id: int,
    new_quantity: int,
    reason: str,
    actor: User,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> Tuple[int, StockTransaction]:
    """Set stock to the absolute ``new_quantity`` (stocktake correction)."""
    new_quantity = _require_int(new_quantity, "new_quantity", 0)
    reason = _require_reason(reason)
    return _set_stock(
        db, product_id, TransactionType.ADJUSTMENT,
        lambda previous: (new_quantity, abs(new_quantity - previous)),
        reason, actor, reference, notes,
    )


def debit_for_allocation(
    db: Session,
    product: Product,
    quantity: int,
    actor: User,
    reference_label: str,
) -> Tuple[int, StockTransaction]:
    """
    Take ``quantity`` units out for a bill, refusing to go below zero.

    The check and the decrement are one conditional UPDATE, so two
    allocations racing for the same units cannot both succeed. On
    refusal nothing is written.
    """
    quantity = _require_int(quantity, "quantity", 1)

    updated = (
        db.query(Product)
        .filter(Product.id == product.id, Product.stock_count >= quantity)
        .update({Product.stock_count: Product.stock_count - quantity}, synchronize_session=False)
    )
    db.refresh(product)

    if updated == 0:
        logger.warning(
            "Allocation of %s x product %s refused, only %s available",
            quantity, product.id, product.stock_count,
        )
        raise InsufficientStock(product.name, product.stock_count, quantity)

    new_stock = product.stock_count
    transaction = _record(
        db, product, TransactionType.OUT, quantity, new_stock + quantity, new_stock,
        ALLOCATION_REASON, actor, reference=reference_label,
    )
    return new_stock, transaction


def low_stock(db: Session, threshold: int):
    """Active products at or below ``threshold``, emptiest first."""
    threshold = _require_int(threshold, "threshold", 0)
    return (
        db.query(Product)
        .filter(Product.is_active.is_(True), Product.stock_count <= threshold)
        .order_by(Product.stock_count.asc(), Product.id.asc())
        .all()
    )
