# backend/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Literal, Optional

Category = Literal["frames", "sunglasses", "reading-glasses", "accessories"]


# Schema for creating a product; stock_count is the opening stock
class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    sku: str = Field(min_length=1)
    description: Optional[str] = None
    category: Optional[Category] = None
    price: float = Field(ge=0)
    stock_count: int = Field(default=0, ge=0)


# Schema for editing a product; stock goes through /inventory instead
class ProductUpdate(BaseModel):
    """All fields optional. Unknown fields (stock_count included) are rejected."""
    name: Optional[str] = Field(default=None, min_length=1)
    sku: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[Category] = None
    price: Optional[float] = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")


class ProductResponse(BaseModel):
    id: int
    name: str
    sku: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: float
    stock_count: int
    in_stock: bool
    is_active: bool
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProductMessage(BaseModel):
    message: str
    product: ProductResponse
