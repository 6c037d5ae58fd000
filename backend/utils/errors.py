"""
Typed errors raised by the stock ledger and billing services.

Every error carries a stable machine-readable ``code`` and the HTTP status
the API answers with, plus structured ``details`` that end up in the JSON
body next to the human readable message. Routes never catch these; the
handler registered in ``main.py`` renders them.
"""

from typing import Any, Dict, Optional


class StockBillingError(Exception):
    code = "STOCK_BILLING_ERROR"
    status_code = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.code, "message": self.message}
        body.update(self.details)
        return body


class ProductNotFound(StockBillingError):
    code = "PRODUCT_NOT_FOUND"
    status_code = 404

    def __init__(self, product_id: Any):
        super().__init__(f"Product not found: {product_id}", product_id=product_id)
        self.product_id = product_id


class InsufficientStock(StockBillingError):
    code = "INSUFFICIENT_STOCK"
    status_code = 400

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}, Requested: {requested}",
            product=product_name,
            available=available,
            requested=requested,
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class DuplicateSku(StockBillingError):
    code = "DUPLICATE_SKU"
    status_code = 409

    def __init__(self, sku: str):
        super().__init__("SKU already exists", sku=sku)
        self.sku = sku


class AdminNotFound(StockBillingError):
    code = "ADMIN_NOT_FOUND"
    status_code = 404

    def __init__(self, admin_id: Any):
        super().__init__("Admin not found", admin_id=admin_id)
        self.admin_id = admin_id


class BillNotFound(StockBillingError):
    code = "BILL_NOT_FOUND"
    status_code = 404

    def __init__(self, bill_id: Any):
        super().__init__("Bill not found", bill_id=bill_id)
        self.bill_id = bill_id


class ValidationFailed(StockBillingError):
    code = "VALIDATION_FAILED"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, **details: Any):
        if field is not None:
            details["field"] = field
        super().__init__(message, **details)
        self.field = field


class InvalidStatusTransition(ValidationFailed):
    code = "INVALID_STATUS_TRANSITION"
    status_code = 409

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot change bill status from {current} to {requested}",
            field="status",
            current=current,
            requested=requested,
        )


class ImmutableRecord(StockBillingError):
    code = "IMMUTABLE_RECORD"
    status_code = 409


class PersistenceFailed(StockBillingError):
    code = "PERSISTENCE_FAILED"
    status_code = 500
