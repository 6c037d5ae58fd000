# schemas/bill.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime

from models.bill import BillStatus

# Input schema for a single requested line
class BillItemCreate(BaseModel):
    product: int
    quantity: int = Field(ge=1)

# Input schema for generating a bill from an admin stock allocation
class BillGenerate(BaseModel):
    admin_id: int
    items: List[BillItemCreate] = Field(min_length=1)
    due_date: datetime
    tax: float = Field(0, ge=0)
    discount: float = Field(0, ge=0)
    notes: Optional[str] = None

# Input schema for an explicit status change
class BillStatusUpdate(BaseModel):
    status: BillStatus

# Short user details shown on a bill
class BillUser(BaseModel):
    id: int
    username: str
    first_name: str
    last_name: str
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

# Short product details shown on a bill line
class BillProduct(BaseModel):
    id: int
    name: str
    sku: str

    model_config = ConfigDict(from_attributes=True)

# Output schema for a bill line item
class BillItemResponse(BaseModel):
    product: BillProduct
    quantity: int
    unit_price: float
    total_price: float

    model_config = ConfigDict(from_attributes=True)

# Output schema for a bill with admin/product details resolved
class BillResponse(BaseModel):
    id: int
    bill_number: str
    admin: BillUser
    generator: BillUser
    items: List[BillItemResponse]
    subtotal: float
    tax: float
    discount: float
    total: float
    status: BillStatus
    due_date: datetime
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

# Response wrapper for mutating endpoints
class BillMessage(BaseModel):
    message: str
    bill: BillResponse

# Billing totals over a period
class BillingSummaryTotals(BaseModel):
    total_bills: int
    total_amount: float
    paid_amount: float
    pending_amount: float
    overdue_amount: float

class BillStatusCount(BaseModel):
    status: BillStatus
    count: int

class BillingSummary(BaseModel):
    summary: BillingSummaryTotals
    status_counts: List[BillStatusCount]
