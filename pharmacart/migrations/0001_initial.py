"""
Initial Pharmacart schema:
- Batch (+ HistoricalBatch, django-simple-history)
- Sale / SaleLine
"""

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Batch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID")),
                ("name", models.CharField(db_index=True, max_length=200, verbose_name="name")),
                (
                    "dosage_form",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Tablet, Capsule, Syrup, ...",
                        max_length=50,
                        verbose_name="dosage form",
                    ),
                ),
                ("category", models.CharField(blank=True, default="", max_length=100, verbose_name="category")),
                ("barcode", models.CharField(blank=True, db_index=True, default="", max_length=64, verbose_name="barcode")),
                ("internal_code", models.CharField(blank=True, default="", max_length=64, verbose_name="internal code")),
                (
                    "price_q",
                    models.BigIntegerField(
                        default=0,
                        help_text="Sale price per pack in cents",
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="sale price",
                    ),
                ),
                (
                    "cost_price_q",
                    models.BigIntegerField(
                        default=0,
                        help_text="Cost price per pack in cents",
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="cost price",
                    ),
                ),
                (
                    "stock",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0"),
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="stock (packs)",
                    ),
                ),
                (
                    "units_per_pack",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="1 = sold by pack only",
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="units per pack",
                    ),
                ),
                ("expiry_date", models.DateField(db_index=True, verbose_name="expiry date")),
                (
                    "max_discount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Empty = derived from the margin",
                        max_digits=5,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                        verbose_name="max discount (%)",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "batch",
                "verbose_name_plural": "batches",
                "ordering": ["name", "expiry_date"],
            },
        ),
        migrations.AddIndex(
            model_name="batch",
            index=models.Index(fields=["name", "dosage_form"], name="pharmacart_batch_product_idx"),
        ),
        migrations.CreateModel(
            name="HistoricalBatch",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("uuid", models.UUIDField(db_index=True, default=uuid.uuid4, editable=False, verbose_name="UUID")),
                ("name", models.CharField(db_index=True, max_length=200, verbose_name="name")),
                (
                    "dosage_form",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Tablet, Capsule, Syrup, ...",
                        max_length=50,
                        verbose_name="dosage form",
                    ),
                ),
                ("category", models.CharField(blank=True, default="", max_length=100, verbose_name="category")),
                ("barcode", models.CharField(blank=True, db_index=True, default="", max_length=64, verbose_name="barcode")),
                ("internal_code", models.CharField(blank=True, default="", max_length=64, verbose_name="internal code")),
                (
                    "price_q",
                    models.BigIntegerField(
                        default=0,
                        help_text="Sale price per pack in cents",
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="sale price",
                    ),
                ),
                (
                    "cost_price_q",
                    models.BigIntegerField(
                        default=0,
                        help_text="Cost price per pack in cents",
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="cost price",
                    ),
                ),
                (
                    "stock",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0"),
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="stock (packs)",
                    ),
                ),
                (
                    "units_per_pack",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="1 = sold by pack only",
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="units per pack",
                    ),
                ),
                ("expiry_date", models.DateField(db_index=True, verbose_name="expiry date")),
                (
                    "max_discount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Empty = derived from the margin",
                        max_digits=5,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                        verbose_name="max discount (%)",
                    ),
                ),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="created at")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="updated at")),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                (
                    "history_type",
                    models.CharField(
                        choices=[("+", "Created"), ("~", "Changed"), ("-", "Deleted")],
                        max_length=1,
                    ),
                ),
                (
                    "history_user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "historical batch",
                "verbose_name_plural": "historical batches",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID")),
                ("daily_order_number", models.PositiveIntegerField(default=1, verbose_name="order number (day)")),
                ("session_id", models.CharField(blank=True, default="", max_length=64, verbose_name="session")),
                ("customer_name", models.CharField(blank=True, default="", max_length=200, verbose_name="customer name")),
                ("customer_code", models.CharField(blank=True, default="", max_length=64, verbose_name="customer code")),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("cash", "Cash"), ("visa", "Card (Visa)")],
                        default="cash",
                        max_length=20,
                        verbose_name="payment method",
                    ),
                ),
                (
                    "sale_type",
                    models.CharField(
                        choices=[("walk_in", "Walk-in"), ("delivery", "Delivery")],
                        default="walk_in",
                        max_length=20,
                        verbose_name="sale type",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("completed", "Completed"),
                            ("pending", "Pending"),
                            ("with_delivery", "With delivery"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="completed",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("delivery_employee_id", models.CharField(blank=True, default="", max_length=64, verbose_name="delivery employee")),
                (
                    "order_discount",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5, verbose_name="order discount (%)"),
                ),
                ("subtotal_q", models.BigIntegerField(default=0, verbose_name="subtotal")),
                ("discount_q", models.BigIntegerField(default=0, verbose_name="discount")),
                ("delivery_fee_q", models.BigIntegerField(default=0, verbose_name="delivery fee")),
                ("total_q", models.BigIntegerField(default=0, verbose_name="total")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
            ],
            options={
                "verbose_name": "sale",
                "verbose_name_plural": "sales",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="SaleLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("dosage_form", models.CharField(blank=True, default="", max_length=50, verbose_name="dosage form")),
                ("is_unit", models.BooleanField(default=False, verbose_name="unit mode")),
                ("quantity", models.DecimalField(decimal_places=4, max_digits=12, verbose_name="quantity")),
                ("unit_price_q", models.BigIntegerField(default=0, verbose_name="unit price")),
                (
                    "discount",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5, verbose_name="discount (%)"),
                ),
                ("total_q", models.BigIntegerField(default=0, verbose_name="line total")),
                (
                    "batch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sale_lines",
                        to="pharmacart.batch",
                        verbose_name="batch",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="pharmacart.sale",
                        verbose_name="sale",
                    ),
                ),
            ],
            options={
                "verbose_name": "sale line",
                "verbose_name_plural": "sale lines",
            },
        ),
    ]
