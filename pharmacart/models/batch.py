"""Batch model."""

import uuid as uuid_lib
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords


class BatchQuerySet(models.QuerySet):
    """Custom QuerySet for Batch with stock filters."""

    def for_product(self, name: str, dosage_form: str = ""):
        """Every batch of a product, earliest expiry first."""
        return self.filter(name=name, dosage_form=dosage_form or "").order_by("expiry_date", "pk")

    def in_stock(self):
        return self.filter(stock__gt=0)

    def expired(self, on: date | None = None):
        return self.filter(expiry_date__lt=on or date.today())


class Batch(models.Model):
    """Physical stock lot of a product."""

    uuid = models.UUIDField(default=uuid_lib.uuid4, editable=False, unique=True, verbose_name=_("UUID"))

    # Product identity (name + dosage form)
    name = models.CharField(_("name"), max_length=200, db_index=True)
    dosage_form = models.CharField(
        _("dosage form"),
        max_length=50,
        blank=True,
        default="",
        help_text=_("Tablet, Capsule, Syrup, ..."),
    )
    category = models.CharField(_("category"), max_length=100, blank=True, default="")

    # Identification only
    barcode = models.CharField(_("barcode"), max_length=64, blank=True, default="", db_index=True)
    internal_code = models.CharField(_("internal code"), max_length=64, blank=True, default="")

    # Prices per pack (in cents)
    price_q = models.BigIntegerField(
        _("sale price"),
        default=0,
        validators=[MinValueValidator(0)],
        help_text=_("Sale price per pack in cents"),
    )
    cost_price_q = models.BigIntegerField(
        _("cost price"),
        default=0,
        validators=[MinValueValidator(0)],
        help_text=_("Cost price per pack in cents"),
    )

    # Stock in packs (fractional once single units are sold)
    stock = models.DecimalField(
        _("stock (packs)"),
        max_digits=12,
        decimal_places=4,
        default=Decimal("0"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    units_per_pack = models.PositiveIntegerField(
        _("units per pack"),
        default=1,
        validators=[MinValueValidator(1)],
        help_text=_("1 = sold by pack only"),
    )
    expiry_date = models.DateField(_("expiry date"), db_index=True)

    max_discount = models.DecimalField(
        _("max discount (%)"),
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text=_("Empty = derived from the margin"),
    )

    # Audit
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    # History tracking (stock and price changes)
    history = HistoricalRecords()

    objects = BatchQuerySet.as_manager()

    class Meta:
        verbose_name = _("batch")
        verbose_name_plural = _("batches")
        ordering = ["name", "expiry_date"]
        indexes = [
            models.Index(fields=["name", "dosage_form"], name="pharmacart_batch_product_idx"),
        ]

    def __str__(self):
        form = f" ({self.dosage_form})" if self.dosage_form else ""
        return f"{self.name}{form} - exp {self.expiry_date:%m/%Y}"

    @property
    def price(self) -> Decimal:
        """Sale price per pack in currency units."""
        return Decimal(self.price_q) / 100

    @price.setter
    def price(self, value: Decimal):
        self.price_q = int((Decimal(str(value)) * 100).to_integral_value(rounding=ROUND_HALF_UP))

    @property
    def cost_price(self) -> Decimal:
        """Cost price per pack in currency units."""
        return Decimal(self.cost_price_q) / 100

    @cost_price.setter
    def cost_price(self, value: Decimal):
        self.cost_price_q = int((Decimal(str(value)) * 100).to_integral_value(rounding=ROUND_HALF_UP))

    @property
    def is_expired(self) -> bool:
        return self.expiry_date < date.today()

    def to_info(self):
        """Catalog record consumed by the cart."""
        from pharmacart.protocols import BatchInfo

        return BatchInfo(
            id=str(self.pk),
            name=self.name,
            dosage_form=self.dosage_form,
            category=self.category,
            price=self.price,
            cost_price=self.cost_price,
            stock=self.stock,
            units_per_pack=self.units_per_pack,
            expiry_date=self.expiry_date,
            max_discount=self.max_discount,
            barcode=self.barcode or None,
            internal_code=self.internal_code or None,
        )

    @property
    def max_discount_effective(self) -> Decimal:
        """Discount ceiling applied at the counter."""
        from pharmacart.conf import get_pharmacart_settings
        from pharmacart.discounts import effective_max_discount

        conf = get_pharmacart_settings()
        return effective_max_discount(
            self.to_info(),
            default_max=conf.DEFAULT_MAX_DISCOUNT,
            low_margin_threshold=conf.LOW_MARGIN_THRESHOLD,
        )

    @property
    def margin_percent(self) -> Decimal | None:
        """Margin percentage (None without a price)."""
        if not self.price_q:
            return None
        margin = self.price_q - self.cost_price_q
        return Decimal(margin * 100 / self.price_q).quantize(Decimal("0.1"))
