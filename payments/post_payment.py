# FILE: payments/post_payment.py
from __future__ import annotations

import logging

from django.apps import apps
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# Public signal that other apps (kitchen console, analytics) can listen to.
# Sent after commit, once per order. Receivers get kwargs: order
order_paid: Signal = Signal()


def dispatch_payment_confirmation(order_id: int) -> None:
    """
    Queue the customer confirmation and the staff notification for a
    newly paid order, then emit ``order_paid``.

    Runs from ``transaction.on_commit``. Each step is best-effort: failures
    are logged and never reach the webhook response.
    """
    from .tasks import send_payment_confirmation_email_task, send_staff_notification_task

    try:
        send_payment_confirmation_email_task.delay(order_id)
    except Exception:
        logger.exception("Failed to queue payment confirmation for order %s", order_id)

    try:
        send_staff_notification_task.delay(order_id)
    except Exception:
        logger.exception("Failed to queue staff notification for order %s", order_id)

    try:
        Order = apps.get_model("orders", "Order")
        order = Order.objects.filter(pk=order_id).first()
        if order is not None:
            order_paid.send(sender=Order, order=order)
    except Exception:
        logger.exception("Failed emitting order_paid for order %s", order_id)
