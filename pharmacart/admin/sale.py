"""Sale admin."""

from django.contrib import admin
from django.utils.html import format_html

from pharmacart.choices import SaleStatus
from pharmacart.models import Sale, SaleLine

STATUS_COLORS = {
    SaleStatus.COMPLETED: "#28a745",
    SaleStatus.PENDING: "#ffc107",
    SaleStatus.WITH_DELIVERY: "#17a2b8",
    SaleStatus.CANCELLED: "#dc3545",
}


class SaleLineInline(admin.TabularInline):
    model = SaleLine
    extra = 0
    can_delete = False
    fields = ["batch", "name", "dosage_form", "is_unit", "quantity", "unit_price_q", "discount", "total_q"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = [
        "daily_order_number",
        "created_at",
        "customer_name",
        "payment_method",
        "sale_type",
        "status_badge",
        "formatted_total",
    ]
    list_filter = ["status", "payment_method", "sale_type", "created_at"]
    search_fields = ["customer_name", "customer_code", "uuid"]
    readonly_fields = [
        "uuid",
        "daily_order_number",
        "session_id",
        "order_discount",
        "subtotal_q",
        "discount_q",
        "delivery_fee_q",
        "total_q",
        "created_at",
    ]
    date_hierarchy = "created_at"
    inlines = [SaleLineInline]

    fieldsets = [
        (None, {"fields": ("daily_order_number", "customer_name", "customer_code")}),
        ("Payment", {"fields": ("payment_method", "sale_type", "status", "delivery_employee_id")}),
        (
            "Totals",
            {"fields": ("order_discount", "subtotal_q", "discount_q", "delivery_fee_q", "total_q")},
        ),
        (
            "Metadata",
            {
                "fields": ("uuid", "session_id", "created_at"),
                "classes": ("collapse",),
            },
        ),
    ]

    def formatted_total(self, obj):
        return f"{obj.total_q / 100:.2f}"

    formatted_total.short_description = "Total"
    formatted_total.admin_order_field = "total_q"

    def status_badge(self, obj):
        return format_html(
            '<span style="background-color:{};color:#fff;'
            'padding:2px 6px;border-radius:3px;font-size:11px;">{}</span>',
            STATUS_COLORS.get(obj.status, "#6c757d"),
            obj.get_status_display(),
        )

    status_badge.short_description = "Status"

    actions = ["mark_completed", "mark_cancelled"]

    @admin.action(description="Mark selected sales as completed")
    def mark_completed(self, request, queryset):
        updated = queryset.update(status=SaleStatus.COMPLETED)
        self.message_user(request, f"{updated} sale(s) completed.")

    @admin.action(description="Mark selected sales as cancelled")
    def mark_cancelled(self, request, queryset):
        updated = queryset.update(status=SaleStatus.CANCELLED)
        self.message_user(request, f"{updated} sale(s) cancelled.")
