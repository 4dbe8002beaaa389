from __future__ import annotations

import logging

from celery import shared_task
from django.apps import apps
from django.conf import settings
from django.core.mail import send_mail

from . import emails

logger = logging.getLogger(__name__)


def _load_order(order_id: int):
    Order = apps.get_model("orders", "Order")
    return Order.objects.prefetch_related("items").filter(pk=order_id).first()


def send_customer_email(order, subject: str, body: str) -> bool:
    if not order.customer_email:
        logger.warning("No email available for order %s", order.order_number)
        return False
    send_mail(
        subject=subject,
        message=body,
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", "noreply@southplace.example"),
        recipient_list=[order.customer_email],
        fail_silently=False,
    )
    return True


@shared_task
def send_order_delivered_email_task(order_id: int):
    """
    Tell the customer their order has arrived.
    """
    try:
        order = _load_order(order_id)
        if not order:
            return
        subject, body = emails.order_delivered(order)
        if send_customer_email(order, subject, body):
            logger.info("Delivered email sent for order %s", order.order_number)
    except Exception:
        logger.exception("Failed to send delivered email for order %s", order_id)


@shared_task
def send_order_status_update_email_task(order_id: int, new_status: str):
    try:
        order = _load_order(order_id)
        if not order:
            return
        subject, body = emails.order_status_update(order, new_status)
        if send_customer_email(order, subject, body):
            logger.info("Status update email (%s) sent for order %s", new_status, order.order_number)
    except Exception:
        logger.exception("Failed to send status update email for order %s", order_id)
