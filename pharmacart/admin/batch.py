"""Batch admin."""

from datetime import date, timedelta

from django.contrib import admin
from django.utils.html import format_html
from simple_history.admin import SimpleHistoryAdmin

from pharmacart.models import Batch

EXPIRY_WARNING_DAYS = 90


@admin.register(Batch)
class BatchAdmin(SimpleHistoryAdmin):
    list_display = [
        "name",
        "dosage_form",
        "expiry_status",
        "formatted_price",
        "stock",
        "units_per_pack",
        "margin_display",
        "max_discount_effective",
    ]
    list_filter = ["dosage_form", "category", "expiry_date"]
    search_fields = ["name", "barcode", "internal_code"]
    readonly_fields = ["uuid", "created_at", "updated_at", "margin_display", "max_discount_effective"]
    ordering = ["name", "expiry_date"]
    date_hierarchy = "expiry_date"

    fieldsets = [
        (None, {"fields": ("name", "dosage_form", "category")}),
        ("Identification", {"fields": ("barcode", "internal_code")}),
        (
            "Price & Discount",
            {
                "fields": ("price_q", "cost_price_q", "margin_display", "max_discount", "max_discount_effective"),
                "description": "Prices in cents. Leave max discount empty to derive it from the margin.",
            },
        ),
        ("Stock", {"fields": ("stock", "units_per_pack", "expiry_date")}),
        (
            "Metadata",
            {
                "fields": ("uuid", "created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    ]

    def formatted_price(self, obj):
        return f"{obj.price_q / 100:.2f}"

    formatted_price.short_description = "Price"
    formatted_price.admin_order_field = "price_q"

    def margin_display(self, obj):
        margin = obj.margin_percent
        return "-" if margin is None else f"{margin}%"

    margin_display.short_description = "Margin"

    def expiry_status(self, obj):
        """Expiry date with a colored badge."""
        today = date.today()
        if obj.expiry_date < today:
            color, label = "#dc3545", "Expired"
        elif obj.expiry_date <= today + timedelta(days=EXPIRY_WARNING_DAYS):
            color, label = "#ffc107", "Expiring"
        else:
            return obj.expiry_date.strftime("%m/%Y")
        return format_html(
            '{} <span style="background-color:{};color:#000;'
            'padding:2px 6px;border-radius:3px;font-size:11px;">{}</span>',
            obj.expiry_date.strftime("%m/%Y"),
            color,
            label,
        )

    expiry_status.short_description = "Expiry"
    expiry_status.admin_order_field = "expiry_date"

    actions = ["clear_max_discount"]

    @admin.action(description="Derive max discount from margin")
    def clear_max_discount(self, request, queryset):
        updated = 0
        for batch in queryset.exclude(max_discount=None):
            batch.max_discount = None
            batch.save(update_fields=["max_discount", "updated_at"])
            updated += 1
        self.message_user(request, f"{updated} batch(es) updated.")
