from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Order

logger = logging.getLogger(__name__)


def _send(event: dict) -> None:
    try:
        layer = get_channel_layer()
        if layer is None:
            return
        async_to_sync(layer.group_send)(
            "orders_console",
            {"type": "order_event", "data": event},
        )
    except Exception:
        # Console broadcast must never break an order save
        logger.warning("orders_console broadcast failed for %s", event.get("order_number"), exc_info=True)


@receiver(post_save, sender=Order)
def orders_broadcast(sender, instance: Order, created: bool, **kwargs):
    _send({
        "event": "order_created" if created else "order_updated",
        "order_number": instance.order_number,
        "status": instance.status,
        "payment_status": instance.payment_status,
        "total": str(instance.total),
        "created_at": instance.created_at.isoformat() if instance.created_at else None,
    })
