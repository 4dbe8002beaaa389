# FILE: payments/tasks.py
from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.apps import apps
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

from orders import emails
from orders.tasks import send_customer_email

logger = logging.getLogger(__name__)


def _load_order(order_id: int):
    Order = apps.get_model("orders", "Order")
    return Order.objects.prefetch_related("items").filter(pk=order_id).first()


@shared_task
def send_payment_confirmation_email_task(order_id: int):
    """
    Send the payment confirmation to the customer.
    """
    try:
        order = _load_order(order_id)
        if not order:
            return
        subject, body = emails.payment_confirmation(order)
        if send_customer_email(order, subject, body):
            logger.info("Payment confirmation email sent for order %s", order.order_number)
    except Exception:
        logger.exception("Failed to send confirmation email for order %s", order_id)


@shared_task
def send_staff_notification_task(order_id: int):
    """
    Send new order notification to restaurant staff.
    """
    try:
        staff_emails = getattr(settings, "STAFF_NOTIFICATION_EMAILS", [])
        if not staff_emails:
            return

        order = _load_order(order_id)
        if not order:
            return

        subject, body = emails.staff_new_order(order)
        send_mail(
            subject=subject,
            message=body,
            from_email=getattr(settings, "DEFAULT_FROM_EMAIL", "noreply@southplace.example"),
            recipient_list=list(staff_emails),
            fail_silently=False,
        )
        logger.info("Staff notification email sent for order %s", order.order_number)
    except Exception:
        logger.exception("Failed to send staff notification for order %s", order_id)


@shared_task
def purge_webhook_events_task(days: int = None) -> int:
    """
    Delete processed webhook dedup records older than the retention window.
    Unprocessed records are kept for inspection.
    """
    days = int(days if days is not None else getattr(settings, "WEBHOOK_EVENT_RETENTION_DAYS", 30))
    cutoff = timezone.now() - timedelta(days=days)
    WebhookEvent = apps.get_model("payments", "WebhookEvent")
    deleted, _ = WebhookEvent.objects.filter(processed=True, created_at__lt=cutoff).delete()
    if deleted:
        logger.info("Purged %s webhook events older than %s days", deleted, days)
    return deleted
