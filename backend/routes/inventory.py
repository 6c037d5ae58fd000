# backend/routes/inventory.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional

from config import settings
from database import get_db, commit
from models.users import User
from services import ledger
from utils.tokenJWT import permission_required
from utils.permissions import CAN_MANAGE_INVENTORY
from utils.audit import write_log, client_ip
import schemas.stock as stock_schemas

router = APIRouter(prefix="/inventory", tags=["Inventory"])

manage_inventory = permission_required(CAN_MANAGE_INVENTORY)


def _result(db: Session, request: Request, user: User, action: str, message: str, new_stock, transaction):
    # Stock write and ledger row commit together, the audit log after
    commit(db)
    db.refresh(transaction)
    write_log(db, user_id=user.id, action=action, resource="inventory", status="SUCCESS",
              ip=client_ip(request), meta={"transaction_id": transaction.id, "product_id": transaction.product_id,
                                           "previous_stock": transaction.previous_stock, "new_stock": new_stock})
    return {"message": message, "new_stock": new_stock, "transaction": transaction}


@router.post("/add-stock", response_model=stock_schemas.StockChangeResult)
def add_stock(
    payload: stock_schemas.StockQuantityChange,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_inventory),
):
    new_stock, transaction = ledger.increase(
        db, payload.product_id, payload.quantity, payload.reason, current_user,
        reference=payload.reference, notes=payload.notes,
    )
    return _result(db, request, current_user, "STOCK_ADD", "Stock added successfully", new_stock, transaction)


@router.post("/remove-stock", response_model=stock_schemas.StockChangeResult)
def remove_stock(
    payload: stock_schemas.StockQuantityChange,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_inventory),
):
    new_stock, transaction = ledger.decrease(
        db, payload.product_id, payload.quantity, payload.reason, current_user,
        reference=payload.reference, notes=payload.notes,
    )
    return _result(db, request, current_user, "STOCK_REMOVE", "Stock removed successfully", new_stock, transaction)


@router.post("/adjust-stock", response_model=stock_schemas.StockChangeResult)
def adjust_stock(
    payload: stock_schemas.StockAdjustment,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_inventory),
):
    new_stock, transaction = ledger.adjust(
        db, payload.product_id, payload.new_quantity, payload.reason, current_user,
        reference=payload.reference, notes=payload.notes,
    )
    return _result(db, request, current_user, "STOCK_ADJUSTMENT", "Stock adjusted successfully", new_stock, transaction)


@router.get("/low-stock", response_model=stock_schemas.LowStockReport)
def low_stock(
    threshold: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_inventory),
):
    if threshold is None:
        threshold = settings.LOW_STOCK_THRESHOLD
    products = ledger.low_stock(db, threshold)
    return {"threshold": threshold, "count": len(products), "products": products}
