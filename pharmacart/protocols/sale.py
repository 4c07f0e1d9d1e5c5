"""
SaleRecorder protocol.

Receives finalized orders from the checkout facade. The recorder owns
persistence and is the only place where catalog stock is decremented.

Usage:
    # In settings.py
    PHARMACART = {
        "SALE_RECORDER": "pharmacart.adapters.sale_recorder.DjangoSaleRecorder",
    }

    # Or any object with a record_sale() method:
    class ErpSaleRecorder:
        def record_sale(self, order) -> str:
            return erp_client.post_invoice(order.as_dict())["id"]
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pharmacart.service import OrderSnapshot


@runtime_checkable
class SaleRecorder(Protocol):
    """
    Interface for persisting a checked-out order.

    Implemented by apps that own sales data and authoritative stock.
    """

    def record_sale(self, order: "OrderSnapshot") -> str:
        """
        Persist the order and decrement stock.

        Args:
            order: Finalized snapshot built by CheckoutService

        Returns:
            Identifier of the recorded sale.

        Raises:
            CartError: If the sale cannot be recorded (e.g. STOCK_CONFLICT).
        """
        ...
