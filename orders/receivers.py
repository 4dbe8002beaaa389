from __future__ import annotations

import logging

from django.db import transaction
from django.dispatch import receiver

from .models import Order
from .signals import order_status_changed

logger = logging.getLogger(__name__)


def dispatch_status_notification(order_id: int, new_status: str) -> None:
    """
    Queue the customer notification for a status change.

    Best-effort: a broker or task failure is logged and never propagates
    back into the status change.
    """
    from .tasks import send_order_delivered_email_task, send_order_status_update_email_task

    try:
        if new_status == Order.STATUS_DELIVERED:
            send_order_delivered_email_task.delay(order_id)
        else:
            send_order_status_update_email_task.delay(order_id, new_status)
    except Exception:
        logger.exception("Failed to queue status notification for order %s (%s)", order_id, new_status)


@receiver(order_status_changed)
def on_status_changed_notify_customer(sender, order: Order = None, old: str = '', new: str = '', by_user=None, **kwargs):
    if not order or not new:
        return
    order_id = order.pk
    transaction.on_commit(lambda: dispatch_status_notification(order_id, new))
