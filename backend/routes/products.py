# backend/routes/products.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db, commit
from models.users import User
from services import catalog, ledger
from utils.tokenJWT import get_current_user, permission_required
from utils.permissions import CAN_MANAGE_PRODUCTS
from utils.audit import write_log, client_ip
import schemas.product as product_schemas

router = APIRouter(prefix="/products", tags=["Products"])

manage_products = permission_required(CAN_MANAGE_PRODUCTS)


def _saved(db: Session, request: Request, user: User, action: str, product):
    # Product change commits first, the audit log after
    commit(db)
    write_log(db, user_id=user.id, action=action, resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"id": product.id, "sku": product.sku})
    db.refresh(product)
    return product


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/{product_id}", response_model=product_schemas.ProductResponse)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ledger.get_product(db, product_id)


# =========================
# CREATE PRODUCT
# =========================
@router.post("", response_model=product_schemas.ProductMessage, status_code=201)
def create_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_products),
):
    product = catalog.create_product(db, payload.model_dump(), current_user)
    product = _saved(db, request, current_user, "PRODUCT_CREATE", product)
    return {"message": "Product created successfully", "product": product}


# =========================
# UPDATE PRODUCT
# =========================
@router.put("/{product_id}", response_model=product_schemas.ProductMessage)
def update_product(
    product_id: int,
    payload: product_schemas.ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_products),
):
    product = catalog.update_product(db, product_id, payload.model_dump(exclude_unset=True), current_user)
    product = _saved(db, request, current_user, "PRODUCT_UPDATE", product)
    return {"message": "Product updated successfully", "product": product}


# =========================
# DELETE PRODUCT (soft)
# =========================
@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_products),
):
    product = catalog.deactivate_product(db, product_id, current_user)
    _saved(db, request, current_user, "PRODUCT_DELETE", product)
    return {"message": "Product deleted successfully"}
