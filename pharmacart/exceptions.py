"""Pharmacart exceptions."""

from typing import Any


ERROR_MESSAGES = {
    # Cart rejections (reported through Outcome, never raised)
    "INVALID_QUANTITY": "Invalid quantity",
    "INSUFFICIENT_STOCK": "Not enough stock for this batch",
    "BELOW_MINIMUM": "Quantity below the allowed minimum",
    "LINE_NOT_FOUND": "Line not found in cart",
    "BATCH_NOT_FOUND": "Batch not found in catalog",
    "NO_DUAL_MODE": "Batch has no unit mode",
    "NO_STOCK_AVAILABLE": "No batch with available stock",
    "INVALID_POSITION": "Invalid cart position",
    "PRODUCT_MISMATCH": "Target batch belongs to another product",
    "SHORTFALL": "Requested quantity only partially allocated",
    "DISCOUNT_CAPPED": "Discount capped at the allowed maximum",
    # Checkout / recording failures (raised)
    "ORDER_NOT_ELIGIBLE": "Order is not eligible for checkout",
    "INVALID_PAYMENT_METHOD": "Invalid payment method",
    "INVALID_SALE_TYPE": "Invalid sale type",
    "DELIVERY_EMPLOYEE_REQUIRED": "Delivery orders need a delivery employee",
    "SESSION_NOT_FOUND": "Order session not found",
    "STOCK_CONFLICT": "Catalog stock changed before the sale was recorded",
    "INVALID_SETTING": "Invalid Pharmacart setting",
}


class CartError(Exception):
    """
    Structured exception for checkout and recording failures.

    Usage:
        try:
            order = checkout.build_order(session)
        except CartError as e:
            if e.code == "ORDER_NOT_ELIGIBLE":
                print(f"Session {e.session_id} has nothing to sell")
    """

    def __init__(self, code: str, message: str = "", **data: Any) -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    @property
    def session_id(self) -> str | None:
        return self.data.get("session_id")

    @property
    def batch_id(self) -> str | None:
        return self.data.get("batch_id")

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "data": self.data,
        }
