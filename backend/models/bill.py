from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, func, Enum, CheckConstraint, event
from sqlalchemy import inspect
from sqlalchemy.orm import relationship
from database import Base
from utils.errors import ImmutableRecord
import enum

# Enum for bill payment states
class BillStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"

# Bill raised against an admin for stock allocated to them
class Bill(Base):
    __tablename__ = "bills"
    __table_args__ = (
        CheckConstraint("tax >= 0", name="ck_bills_tax_non_negative"),
        CheckConstraint("discount >= 0", name="ck_bills_discount_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    bill_number = Column(String, unique=True, nullable=False, index=True)
    admin_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    subtotal = Column(Float, nullable=False)
    tax = Column(Float, nullable=False, default=0)
    discount = Column(Float, nullable=False, default=0)
    total = Column(Float, nullable=False)

    status = Column(Enum(BillStatus), default=BillStatus.PENDING, nullable=False, index=True)
    due_date = Column(DateTime(timezone=True), nullable=False)
    notes = Column(String, nullable=True)

    generated_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    items = relationship("BillItem", back_populates="bill", cascade="all, delete-orphan", order_by="BillItem.position")
    admin = relationship("User", foreign_keys=[admin_id])
    generator = relationship("User", foreign_keys=[generated_by])

    def recompute_totals(self):
        self.subtotal = sum(item.total_price for item in self.items)
        self.total = self.subtotal + (self.tax or 0) - (self.discount or 0)
        return self.total

# Represents a line item on a bill; unit_price is a snapshot taken at generation
class BillItem(Base):
    __tablename__ = "bill_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_bill_items_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_bill_items_unit_price"),
    )

    id = Column(Integer, primary_key=True, index=True)
    bill_id = Column(Integer, ForeignKey("bills.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)

    bill = relationship("Bill", back_populates="items")
    product = relationship("Product")


# Only a bill's status may change once it is stored
_MUTABLE_BILL_FIELDS = {"status"}


@event.listens_for(Bill, "before_update")
def _guard_bill_update(mapper, connection, target):
    state = inspect(target)
    for attr in mapper.column_attrs:
        if attr.key in _MUTABLE_BILL_FIELDS:
            continue
        if state.attrs[attr.key].history.has_changes():
            raise ImmutableRecord(f"Bill field '{attr.key}' cannot be changed", bill_id=target.id, field=attr.key)


@event.listens_for(BillItem, "before_update")
def _guard_bill_item_update(mapper, connection, target):
    raise ImmutableRecord("Bill items cannot be changed", bill_id=target.bill_id)
