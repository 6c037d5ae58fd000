# backend/services/composer.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from models.bill import Bill, BillItem, BillStatus
from models.product import Product
from models.users import User
from services import sequence
from services.ledger import get_product
from utils.errors import InsufficientStock, ValidationFailed

logger = logging.getLogger(__name__)


# Requested (product, quantity) pair as it arrives from the caller
@dataclass
class RequestedLine:
    product_id: int
    quantity: int


# Unsaved bill plus the products each line debits, in request order
@dataclass
class ComposedBill:
    bill: Bill
    lines: List[Tuple[Product, int]] = field(default_factory=list)


def _require_amount(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationFailed(f"{name} must be a number", field=name)
    if value < 0:
        raise ValidationFailed(f"{name} cannot be negative", field=name)
    return float(value)


def compose(
    db: Session,
    admin: User,
    requested_lines: Sequence[RequestedLine],
    actor: User,
    due_date: datetime,
    tax: float = 0,
    discount: float = 0,
    notes: Optional[str] = None,
) -> ComposedBill:
    """
    Price the requested lines against current stock and build a PENDING bill.

    All lines are validated before anything is built; the first failing
    line raises and no bill comes out. Inventory is not touched. The bill is
    returned unsaved, but drawing its number advances the bill counter in
    the caller's transaction.
    """
    if not requested_lines:
        raise ValidationFailed("A bill needs at least one item", field="items")
    if due_date is None:
        raise ValidationFailed("due_date is required", field="due_date")
    tax = _require_amount(tax, "tax")
    discount = _require_amount(discount, "discount")

    items: List[BillItem] = []
    lines: List[Tuple[Product, int]] = []
    requested_per_product: Dict[int, int] = {}

    for position, line in enumerate(requested_lines):
        quantity = line.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationFailed("quantity must be a positive integer", field=f"items[{position}].quantity")

        product = get_product(db, line.product_id)

        # Same product on several lines draws from one stock count
        requested = requested_per_product.get(product.id, 0) + quantity
        if requested > product.stock_count:
            raise InsufficientStock(product.name, product.stock_count, requested)
        requested_per_product[product.id] = requested

        unit_price = product.price
        total_price = unit_price * quantity

        items.append(
            BillItem(
                position=position,
                product_id=product.id,
                quantity=quantity,
                unit_price=unit_price,
                total_price=total_price,
            )
        )
        lines.append((product, quantity))

    bill = Bill(
        admin_id=admin.id,
        items=items,
        tax=tax,
        discount=discount,
        status=BillStatus.PENDING,
        due_date=due_date,
        notes=notes,
        generated_by=actor.id,
    )
    if bill.recompute_totals() < 0:
        raise ValidationFailed("discount cannot exceed subtotal plus tax", field="discount")

    bill.bill_number = sequence.next_bill_number(db)
    logger.debug("Composed %s for admin %s: %s line(s), total %s", bill.bill_number, admin.id, len(items), bill.total)
    return ComposedBill(bill=bill, lines=lines)
