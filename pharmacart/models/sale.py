"""Sale models (written by DjangoSaleRecorder)."""

import uuid as uuid_lib
from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _

from pharmacart.choices import PaymentMethod, SaleStatus, SaleType


class Sale(models.Model):
    """Recorded order."""

    uuid = models.UUIDField(default=uuid_lib.uuid4, editable=False, unique=True, verbose_name=_("UUID"))
    daily_order_number = models.PositiveIntegerField(_("order number (day)"), default=1)
    session_id = models.CharField(_("session"), max_length=64, blank=True, default="")

    customer_name = models.CharField(_("customer name"), max_length=200, blank=True, default="")
    customer_code = models.CharField(_("customer code"), max_length=64, blank=True, default="")

    payment_method = models.CharField(
        _("payment method"),
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
    )
    sale_type = models.CharField(
        _("sale type"),
        max_length=20,
        choices=SaleType.choices,
        default=SaleType.WALK_IN,
    )
    status = models.CharField(
        _("status"),
        max_length=20,
        choices=SaleStatus.choices,
        default=SaleStatus.COMPLETED,
        db_index=True,
    )
    delivery_employee_id = models.CharField(_("delivery employee"), max_length=64, blank=True, default="")

    # Money (in cents)
    order_discount = models.DecimalField(_("order discount (%)"), max_digits=5, decimal_places=2, default=Decimal("0"))
    subtotal_q = models.BigIntegerField(_("subtotal"), default=0)
    discount_q = models.BigIntegerField(_("discount"), default=0)
    delivery_fee_q = models.BigIntegerField(_("delivery fee"), default=0)
    total_q = models.BigIntegerField(_("total"), default=0)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("sale")
        verbose_name_plural = _("sales")
        ordering = ["-created_at"]

    def __str__(self):
        return f"#{self.daily_order_number} - {self.customer_name} ({self.total_q / 100:.2f})"

    @property
    def total(self) -> Decimal:
        return Decimal(self.total_q) / 100


class SaleLine(models.Model):
    """Sold quantity of one batch, in pack or unit mode."""

    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name="lines", verbose_name=_("sale"))
    batch = models.ForeignKey(
        "pharmacart.Batch",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sale_lines",
        verbose_name=_("batch"),
    )
    # Denormalized: the batch may be deleted later.
    name = models.CharField(_("name"), max_length=200)
    dosage_form = models.CharField(_("dosage form"), max_length=50, blank=True, default="")

    is_unit = models.BooleanField(_("unit mode"), default=False)
    quantity = models.DecimalField(_("quantity"), max_digits=12, decimal_places=4)
    unit_price_q = models.BigIntegerField(_("unit price"), default=0)
    discount = models.DecimalField(_("discount (%)"), max_digits=5, decimal_places=2, default=Decimal("0"))
    total_q = models.BigIntegerField(_("line total"), default=0)

    class Meta:
        verbose_name = _("sale line")
        verbose_name_plural = _("sale lines")

    def __str__(self):
        mode = _("units") if self.is_unit else _("packs")
        return f"{self.name} x {self.quantity} {mode}"
