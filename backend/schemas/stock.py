# backend/schemas/stock.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional

from models.stock import TransactionType

# Base schema for manual stock operations
class StockChangeBase(BaseModel):
    product_id: int
    reason: str = Field(min_length=1)
    reference: Optional[str] = None
    notes: Optional[str] = None

# Schema for /add-stock and /remove-stock
class StockQuantityChange(StockChangeBase):
    quantity: int = Field(ge=1)

# Schema for /adjust-stock (absolute target, not a delta)
class StockAdjustment(StockChangeBase):
    new_quantity: int = Field(ge=0)

# Schema for returning a ledger entry
class StockTransactionResponse(BaseModel):
    id: int
    product_id: int
    type: TransactionType
    quantity: int
    previous_stock: int
    new_stock: int
    reason: str
    reference: Optional[str] = None
    notes: Optional[str] = None
    performed_by: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

# Result of a stock operation
class StockChangeResult(BaseModel):
    message: str
    new_stock: int
    transaction: StockTransactionResponse

# Product row in the low stock report
class LowStockProduct(BaseModel):
    id: int
    name: str
    sku: str
    stock_count: int
    price: float
    in_stock: bool

    model_config = ConfigDict(from_attributes=True)

class LowStockReport(BaseModel):
    threshold: int
    count: int
    products: List[LowStockProduct]
