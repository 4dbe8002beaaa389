from __future__ import annotations

from django.contrib import admin, messages
from django.http import HttpRequest

from .models import Payment, WebhookDelivery, WebhookEvent
from .reconciliation import apply_event, event_from_record


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Payments are written by the orchestrator and reconciliation only."""
    list_display = ("payment_intent_id", "order", "gateway", "status", "amount", "currency", "processed_at", "created_at")
    list_filter = ("gateway", "status", "created_at")
    search_fields = ("=payment_intent_id", "=order__order_number")
    raw_id_fields = ("order",)
    readonly_fields = (
        "payment_intent_id", "order", "gateway", "status", "amount", "currency",
        "gateway_response", "processed_at", "created_at", "updated_at",
    )

    def has_add_permission(self, request):
        return False


class WebhookDeliveryInline(admin.TabularInline):
    model = WebhookDelivery
    extra = 0
    can_delete = False
    fields = ("received_at", "result", "payload")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    inlines = [WebhookDeliveryInline]
    list_display = ("created_at", "gateway", "event_type", "event_key", "provider_reference", "processed", "result", "processing_attempts")
    list_filter = ("gateway", "processed", "result", "created_at")
    search_fields = ("=event_key", "=provider_reference", "event_type", "last_error")
    readonly_fields = ("created_at", "processed_at", "event_data", "last_error", "result")

    actions = ("replay_selected",)

    @admin.action(description="Replay selected unprocessed events")
    def replay_selected(self, request: HttpRequest, queryset):
        ok = 0
        pending = queryset.filter(processed=False)
        for ev in pending:
            try:
                apply_event(event_from_record(ev))
                ok += 1
            except Exception as exc:
                self.message_user(request, f"{ev.event_key}: {exc}", level=messages.WARNING)
        self.message_user(request, f"Replayed {ok}/{pending.count()} events", level=messages.INFO)
