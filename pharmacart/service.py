"""
Pharmacart checkout facade.

CORE:
    CheckoutService.build_order(session, ...) - Finalized OrderSnapshot of a session

CONVENIENCE:
    CheckoutService.checkout(manager, ...)    - Build, record, notify, close the tab

The facade never touches catalog stock. The configured SaleRecorder (if
any) persists the snapshot and decrements stock.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from django.utils import timezone

from pharmacart.choices import PaymentMethod, SaleStatus, SaleType
from pharmacart.conf import PharmacartSettings, get_pharmacart_settings, get_sale_recorder
from pharmacart.discounts import ZERO
from pharmacart.exceptions import CartError
from pharmacart.protocols import SaleRecorder

if TYPE_CHECKING:
    from pharmacart.sessions import OrderSession, SessionManager

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    """Round to cents, half up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class SnapshotLine:
    """One sold line, with its batch data resolved."""

    batch_id: str
    name: str
    dosage_form: str
    is_unit: bool
    quantity: Decimal
    units_per_pack: int
    unit_price: Decimal
    discount: Decimal
    line_total: Decimal

    @property
    def pack_equivalent(self) -> Decimal:
        """Quantity expressed in packs (what leaves catalog stock)."""
        if self.is_unit:
            return self.quantity / self.units_per_pack
        return self.quantity


@dataclass(frozen=True)
class OrderSnapshot:
    """Finalized order handed to the sale recorder."""

    session_id: str
    lines: tuple[SnapshotLine, ...]
    customer_name: str
    customer_code: str
    payment_method: str
    sale_type: str
    status: str
    order_discount: Decimal
    subtotal: Decimal
    discount_amount: Decimal
    delivery_fee: Decimal
    total: Decimal
    delivery_employee_id: str | None = None
    created_at: datetime = field(default_factory=timezone.now)

    def as_dict(self) -> dict:
        data = asdict(self)
        data["lines"] = [asdict(line) for line in self.lines]
        return data


class CheckoutService:
    """
    Assembles finalized orders from order sessions.

    Usage:
        checkout = CheckoutService(settings, recorder=DjangoSaleRecorder())
        order = checkout.checkout(manager, payment_method="cash")
    """

    def __init__(
        self,
        pharmacart_settings: PharmacartSettings | None = None,
        recorder: SaleRecorder | None = None,
    ) -> None:
        self.settings = pharmacart_settings or get_pharmacart_settings()
        self.recorder = recorder if recorder is not None else get_sale_recorder(self.settings)

    # ======================================================================
    # CORE API
    # ======================================================================

    def build_order(
        self,
        session: "OrderSession",
        payment_method: str = PaymentMethod.CASH,
        sale_type: str = SaleType.WALK_IN,
        delivery_employee_id: str | None = None,
        pending: bool = False,
    ) -> OrderSnapshot:
        """
        Build the snapshot of a session's order.

        Args:
            session: Order session to check out
            payment_method: "cash" or "visa"
            sale_type: "walk_in" or "delivery"
            delivery_employee_id: Driver for delivery orders
            pending: Keep the order pending (delivery without driver allowed)

        Returns:
            OrderSnapshot

        Raises:
            CartError: ORDER_NOT_ELIGIBLE, INVALID_PAYMENT_METHOD,
                INVALID_SALE_TYPE or DELIVERY_EMPLOYEE_REQUIRED
        """
        cart = session.cart
        if not cart.is_checkout_eligible:
            raise CartError("ORDER_NOT_ELIGIBLE", session_id=session.id)
        if payment_method not in PaymentMethod.values:
            raise CartError("INVALID_PAYMENT_METHOD", session_id=session.id, payment_method=payment_method)
        if sale_type not in SaleType.values:
            raise CartError("INVALID_SALE_TYPE", session_id=session.id, sale_type=sale_type)

        is_delivery = sale_type == SaleType.DELIVERY
        if is_delivery and not delivery_employee_id and not pending:
            raise CartError("DELIVERY_EMPLOYEE_REQUIRED", session_id=session.id)

        lines = []
        for line in cart.lines():
            if line.quantity <= 0:
                continue
            batch = cart.resolve_batch(line.batch_id)
            lines.append(
                SnapshotLine(
                    batch_id=line.batch_id,
                    name=batch.name,
                    dosage_form=batch.dosage_form,
                    is_unit=line.is_unit,
                    quantity=line.quantity,
                    units_per_pack=batch.units_per_pack,
                    unit_price=batch.unit_price(line.is_unit),
                    discount=line.discount,
                    line_total=to_money(cart.line_total(line)),
                )
            )

        totals = cart.totals()
        delivery_fee = self.settings.DELIVERY_FEE if is_delivery else ZERO
        order_total = to_money(totals.order_total)

        return OrderSnapshot(
            session_id=session.id,
            lines=tuple(lines),
            customer_name=session.customer_name or self.settings.DEFAULT_CUSTOMER_NAME,
            customer_code=session.customer_code,
            payment_method=str(payment_method),
            sale_type=str(sale_type),
            status=str(self._status(is_delivery, delivery_employee_id, pending)),
            order_discount=cart.order_discount,
            subtotal=to_money(totals.gross_subtotal),
            discount_amount=to_money(totals.total_discount_amount),
            delivery_fee=to_money(delivery_fee),
            total=order_total + to_money(delivery_fee),
            delivery_employee_id=delivery_employee_id if is_delivery else None,
        )

    # ======================================================================
    # CONVENIENCE API
    # ======================================================================

    def checkout(
        self,
        manager: "SessionManager",
        session_id: str | None = None,
        **options,
    ) -> OrderSnapshot:
        """
        Check out a session (the active one by default) and close it.

        The snapshot goes to the recorder first; the session is only
        closed once recording succeeded.

        Raises:
            CartError: SESSION_NOT_FOUND, any build_order() error, or
                whatever the recorder raises
        """
        session = manager.get(session_id) if session_id else manager.active
        if session is None:
            raise CartError("SESSION_NOT_FOUND", session_id=session_id)

        order = self.build_order(session, **options)
        sale_id = self.recorder.record_sale(order) if self.recorder is not None else None
        logger.info(
            "Checked out session %s: %d line(s), total %s (sale %s)",
            session.id,
            len(order.lines),
            order.total,
            sale_id,
        )

        from pharmacart.signals import order_checked_out

        order_checked_out.send(sender=self.__class__, order=order, sale_id=sale_id)
        manager.close(session.id)
        return order

    @staticmethod
    def _status(is_delivery: bool, delivery_employee_id: str | None, pending: bool) -> str:
        if pending:
            return SaleStatus.PENDING
        if is_delivery:
            return SaleStatus.WITH_DELIVERY if delivery_employee_id else SaleStatus.PENDING
        return SaleStatus.COMPLETED
