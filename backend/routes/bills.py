# backend/routes/bills.py
from fastapi import APIRouter, Depends, HTTPException, Request, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime

from database import get_db
from models.users import User
from services import billing
from services.composer import RequestedLine
from utils.tokenJWT import permission_required
from utils.permissions import CAN_MANAGE_BILLING, CAN_VIEW_BILLING, SUPERADMIN
from utils.audit import write_log, client_ip
from utils.errors import StockBillingError
from schemas import bill as bill_schemas

router = APIRouter(prefix="/billing", tags=["Billing"])

manage_billing = permission_required(CAN_MANAGE_BILLING)
view_billing = permission_required(CAN_VIEW_BILLING)


# =========================
# GENERATE BILL FOR ADMIN STOCK ALLOCATION
# =========================
@router.post("/generate", response_model=bill_schemas.BillMessage, status_code=201)
def generate_bill(
    payload: bill_schemas.BillGenerate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_billing),
):
    lines = [RequestedLine(product_id=item.product, quantity=item.quantity) for item in payload.items]
    try:
        bill = billing.generate_bill(
            db, payload.admin_id, lines, payload.due_date, current_user,
            tax=payload.tax, discount=payload.discount, notes=payload.notes,
        )
    except StockBillingError as exc:
        write_log(db, user_id=current_user.id, action="BILL_GENERATE", resource="billing", status="FAIL",
                  ip=client_ip(request), meta={"admin_id": payload.admin_id, "error": exc.code})
        raise

    write_log(db, user_id=current_user.id, action="BILL_GENERATE", resource="billing", status="SUCCESS",
              ip=client_ip(request), meta={"bill_id": bill.id, "bill_number": bill.bill_number, "total": bill.total})
    return {"message": "Bill generated successfully", "bill": billing.load_bill(db, bill.id)}


# =========================
# SUMMARY
# =========================
@router.get("/summary/stats", response_model=bill_schemas.BillingSummary)
def billing_summary(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_billing),
):
    return billing.billing_summary(db, start_date, end_date)


# =========================
# SINGLE BILL
# =========================
@router.get("/{bill_id}", response_model=bill_schemas.BillResponse)
def get_bill(
    bill_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(view_billing),
):
    bill = billing.load_bill(db, bill_id)
    # Admins only see bills raised against themselves
    if (current_user.role or "").lower() != SUPERADMIN and bill.admin_id != current_user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    return bill


# =========================
# STATUS UPDATE
# =========================
@router.patch("/{bill_id}/status", response_model=bill_schemas.BillMessage)
def update_bill_status(
    bill_id: int,
    payload: bill_schemas.BillStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_billing),
):
    bill = billing.update_bill_status(db, bill_id, payload.status)
    write_log(db, user_id=current_user.id, action="BILL_STATUS", resource="billing", status="SUCCESS",
              ip=client_ip(request), meta={"bill_id": bill.id, "status": bill.status.value})
    return {"message": "Bill status updated successfully", "bill": billing.load_bill(db, bill.id)}
