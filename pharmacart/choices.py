"""Choices shared by the checkout facade and the sale models."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class PaymentMethod(models.TextChoices):
    CASH = "cash", _("Cash")
    VISA = "visa", _("Card (Visa)")


class SaleType(models.TextChoices):
    WALK_IN = "walk_in", _("Walk-in")
    DELIVERY = "delivery", _("Delivery")


class SaleStatus(models.TextChoices):
    COMPLETED = "completed", _("Completed")
    PENDING = "pending", _("Pending")
    WITH_DELIVERY = "with_delivery", _("With delivery")
    CANCELLED = "cancelled", _("Cancelled")
