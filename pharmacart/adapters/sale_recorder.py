"""
SaleRecorder implementation over the Sale/SaleLine models.

Usage in settings.py:
    PHARMACART = {
        "SALE_RECORDER": "pharmacart.adapters.sale_recorder.DjangoSaleRecorder",
    }
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from pharmacart.exceptions import CartError
from pharmacart.models import Batch, Sale, SaleLine
from pharmacart.protocols import SaleRecorder

logger = logging.getLogger(__name__)

STOCK_PRECISION = Decimal("0.0001")


def to_cents(value: Decimal) -> int:
    return int((Decimal(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


class DjangoSaleRecorder:
    """
    Persists orders as Sale rows and decrements batch stock.

    Stock rows are locked for the duration of the write. If any batch
    no longer holds the sold quantity the whole sale is rolled back.
    """

    def record_sale(self, order) -> str:
        with transaction.atomic():
            locked = self._lock_batches(order)

            for line in order.lines:
                batch = locked.get(line.batch_id)
                if batch is None:
                    # Batch deleted since it entered the cart: the sale line keeps its data.
                    continue
                remaining = (batch.stock - line.pack_equivalent).quantize(STOCK_PRECISION, rounding=ROUND_HALF_UP)
                if remaining < 0:
                    raise CartError(
                        "STOCK_CONFLICT",
                        batch_id=line.batch_id,
                        available=batch.stock,
                        requested=line.pack_equivalent,
                    )
                batch.stock = remaining
                batch.save(update_fields=["stock", "updated_at"])

            today = timezone.localdate()
            sale = Sale.objects.create(
                daily_order_number=self._next_order_number(today),
                session_id=order.session_id,
                customer_name=order.customer_name,
                customer_code=order.customer_code,
                payment_method=order.payment_method,
                sale_type=order.sale_type,
                status=order.status,
                delivery_employee_id=order.delivery_employee_id or "",
                order_discount=order.order_discount,
                subtotal_q=to_cents(order.subtotal),
                discount_q=to_cents(order.discount_amount),
                delivery_fee_q=to_cents(order.delivery_fee),
                total_q=to_cents(order.total),
            )
            SaleLine.objects.bulk_create(
                [
                    SaleLine(
                        sale=sale,
                        batch=locked.get(line.batch_id),
                        name=line.name,
                        dosage_form=line.dosage_form,
                        is_unit=line.is_unit,
                        quantity=line.quantity.quantize(STOCK_PRECISION, rounding=ROUND_HALF_UP),
                        unit_price_q=to_cents(line.unit_price),
                        discount=line.discount,
                        total_q=to_cents(line.line_total),
                    )
                    for line in order.lines
                ]
            )

        logger.info(
            "Recorded sale #%d (%s): %d line(s), total %s",
            sale.daily_order_number,
            sale.uuid,
            len(order.lines),
            order.total,
        )
        return str(sale.uuid)

    @staticmethod
    def _lock_batches(order) -> dict[str, Batch]:
        pks = {int(line.batch_id) for line in order.lines if str(line.batch_id).isdigit()}
        return {str(batch.pk): batch for batch in Batch.objects.select_for_update().filter(pk__in=pks)}

    @staticmethod
    def _next_order_number(today) -> int:
        """
        One past the highest number issued today.

        Today's sales are locked while reading. The number is for display
        at the counter and is not unique: two registers recording the
        first sale of the day at the same moment may both get 1.
        """
        todays = Sale.objects.filter(created_at__date=today)
        # FOR UPDATE cannot wrap an aggregate, so lock the rows first.
        list(todays.select_for_update().values_list("pk", flat=True))
        return (todays.aggregate(last=Max("daily_order_number"))["last"] or 0) + 1


# Verify implementation at import time
if not isinstance(DjangoSaleRecorder(), SaleRecorder):
    raise TypeError("DjangoSaleRecorder does not implement SaleRecorder protocol")
