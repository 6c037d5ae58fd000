# backend/models/stock.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, CheckConstraint, event, func
from sqlalchemy.orm import relationship
from database import Base
from utils.errors import ImmutableRecord
import enum

# Movement classification
class TransactionType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"

# Append-only ledger row explaining one change of a product's stock count
class StockTransaction(Base):
    __tablename__ = "stock_transactions"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_transactions_quantity"),
        CheckConstraint("previous_stock >= 0 AND new_stock >= 0", name="ck_stock_transactions_stock"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    type = Column(Enum(TransactionType), nullable=False, index=True)

    # For ADJUSTMENT this is the absolute delta between previous and new stock
    quantity = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)

    reason = Column(String, nullable=False)
    reference = Column(String, nullable=True)
    notes = Column(String, nullable=True)

    performed_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    product = relationship("Product")
    user = relationship("User")


@event.listens_for(StockTransaction, "before_update")
def _block_transaction_update(mapper, connection, target):
    raise ImmutableRecord(f"Stock transaction {target.id} is immutable", transaction_id=target.id)


@event.listens_for(StockTransaction, "before_delete")
def _block_transaction_delete(mapper, connection, target):
    raise ImmutableRecord(f"Stock transaction {target.id} cannot be deleted", transaction_id=target.id)
