from __future__ import annotations

from django.contrib import admin, messages

from core.exceptions import SettlementError
from .models import Order, OrderItem, OrderStatusHistory


# ---------------------------------------------------------------------------
# Order inlines and admin
# ---------------------------------------------------------------------------

class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    raw_id_fields = ("menu_item",)
    readonly_fields = ("unit_price", "variant_price", "line_total", "extras")


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ("previous_status", "new_status", "changed_by", "note", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Money and payment fields are read-only: totals are pinned at checkout and
    payment state is owned by reconciliation. Status moves only through
    ``Order.transition_to`` (see the actions below).
    """
    list_display = (
        "order_number",
        "customer_name",
        "delivery_method",
        "status",
        "payment_status",
        "payment_gateway",
        "total",
        "created_at",
    )
    list_filter = ("status", "payment_status", "delivery_method", "payment_gateway", "created_at")
    date_hierarchy = "created_at"
    inlines = [OrderItemInline, OrderStatusHistoryInline]
    search_fields = ("=order_number", "customer_email", "customer_name", "=payment_intent_id")
    raw_id_fields = ("user",)
    ordering = ("-created_at",)
    readonly_fields = (
        "order_number", "status", "payment_status", "payment_intent_id", "payment_gateway",
        "paid_at", "confirmation_sent_at",
        "subtotal", "delivery_fee", "vat_rate", "vat_amount", "total",
        "confirmed_at", "started_preparing_at", "ready_at", "out_for_delivery_at",
        "delivered_at", "cancelled_at", "created_at", "updated_at",
    )

    actions = ["advance_status", "cancel_orders"]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("user")

    def _apply(self, request, queryset, pick_status):
        changed = 0
        for order in queryset:
            target = pick_status(order)
            if not target:
                continue
            try:
                order.transition_to(target, by_user=request.user, note="Changed from admin")
                changed += 1
            except SettlementError as exc:
                self.message_user(request, f"{order.order_number}: {exc.message}", level=messages.WARNING)
        self.message_user(request, f"Updated {changed} order(s)", level=messages.INFO)

    @admin.action(description="Advance to next status")
    def advance_status(self, request, queryset):
        def next_forward(order):
            options = [s for s in order.VALID_STATUS_TRANSITIONS.get(order.status, []) if s != Order.STATUS_CANCELLED]
            return options[0] if options else None
        self._apply(request, queryset, next_forward)

    @admin.action(description="Cancel selected orders")
    def cancel_orders(self, request, queryset):
        self._apply(request, queryset, lambda order: Order.STATUS_CANCELLED)


@admin.register(OrderStatusHistory)
class OrderStatusHistoryAdmin(admin.ModelAdmin):
    list_display = ("order", "previous_status", "new_status", "changed_by", "created_at")
    list_filter = ("new_status", "created_at")
    search_fields = ("=order__order_number",)
    readonly_fields = ("order", "previous_status", "new_status", "changed_by", "note", "created_at")
