# backend/services/catalog.py
import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from models.product import Product
from models.users import User
from services import ledger
from utils.errors import DuplicateSku, ValidationFailed

logger = logging.getLogger(__name__)

INITIAL_STOCK_REASON = "Initial stock"

# Fields a product edit may touch; stock_count only moves through the ledger
EDITABLE_FIELDS = ("name", "sku", "description", "category", "price")


def _norm_sku(sku: str) -> str:
    normalized = (sku or "").strip()
    if not normalized:
        raise ValidationFailed("sku is required", field="sku")
    return normalized


def _ensure_sku_free(db: Session, sku: str, exclude_id: int = None):
    query = db.query(Product).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise DuplicateSku(sku)


def create_product(db: Session, data: Dict[str, Any], actor: User) -> Product:
    """
    Add a catalogue entry. Opening stock is booked as an IN transaction so
    the ledger explains the product's stock from the first unit.
    """
    sku = _norm_sku(data.get("sku"))
    _ensure_sku_free(db, sku)
    initial_stock = data.get("stock_count") or 0

    product = Product(
        name=data["name"].strip(),
        sku=sku,
        description=data.get("description"),
        category=data.get("category"),
        price=data["price"],
        stock_count=0,
        is_active=True,
        created_by=actor.id,
    )
    db.add(product)
    db.flush()

    if initial_stock:
        ledger.increase(db, product.id, initial_stock, INITIAL_STOCK_REASON, actor)

    logger.info("Product %s (%s) created by user %s", product.id, sku, actor.id)
    return product


def update_product(db: Session, product_id: int, changes: Dict[str, Any], actor: User) -> Product:
    product = ledger.get_product(db, product_id)

    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        field = sorted(unknown)[0]
        raise ValidationFailed(f"{field} cannot be changed here", field=field)
    for required in ("name", "sku", "price"):
        if required in changes and changes[required] is None:
            raise ValidationFailed(f"{required} cannot be empty", field=required)

    if "sku" in changes:
        changes["sku"] = _norm_sku(changes["sku"])
        if changes["sku"] != product.sku:
            _ensure_sku_free(db, changes["sku"], exclude_id=product.id)

    for key, value in changes.items():
        setattr(product, key, value)
    product.updated_by = actor.id
    db.flush()

    logger.info("Product %s updated by user %s: %s", product.id, actor.id, sorted(changes))
    return product


def deactivate_product(db: Session, product_id: int, actor: User) -> Product:
    """Soft delete: the row and its ledger history stay."""
    product = ledger.get_product(db, product_id)
    product.is_active = False
    product.updated_by = actor.id
    db.flush()
    logger.info("Product %s deactivated by user %s", product.id, actor.id)
    return product
