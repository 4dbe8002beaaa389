"""
Webhook reconciliation state machine.

``apply_event`` applies one ``CanonicalEvent`` to the matching Payment and
its Order:

    Payment   Outcome     Action
    PENDING   SUCCEEDED   Payment PAID, Order PAID (paid_at = event time),
                          confirmation queued once
    PENDING   FAILED      Payment FAILED, Order FAILED (never over PAID)
    PAID      SUCCEEDED   recorded only
    PAID      FAILED      ignored, logged as anomaly
    FAILED    SUCCEEDED   ignored, logged as anomaly (new attempts get a
                          new reference and their own Payment)
    FAILED    FAILED      recorded only
    unknown reference     nothing written

Every delivery for a known reference appends a ``WebhookDelivery`` row with
its raw payload, including redeliveries suppressed by the dedup record.

The Payment and Order rows are locked for the whole read-check-write, so
concurrent deliveries for one reference serialize. Notifications go out on
commit, guarded by ``Order.confirmation_sent_at``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from orders.models import Order
from .gateways import CanonicalEvent, Gateway, Outcome
from .models import Payment, WebhookEvent

logger = logging.getLogger(__name__)

RESULT_PAID = "paid"
RESULT_FAILED = "failed"
RESULT_AUDIT = "audit_only"
RESULT_ANOMALY = "anomaly_ignored"
RESULT_UNKNOWN = "unknown_reference"
RESULT_DUPLICATE = "duplicate"
RESULT_ERROR = "error"


@dataclass(frozen=True)
class ReconcileResult:
    result: str
    payment_id: Optional[int] = None
    order_id: Optional[int] = None
    notified: bool = False

    @property
    def changed_state(self) -> bool:
        return self.result in (RESULT_PAID, RESULT_FAILED)


def _lock_payment(reference: str) -> Optional[Payment]:
    return Payment.objects.select_for_update().filter(payment_intent_id=reference).first()


def _locate_payment(event: CanonicalEvent) -> Optional[Payment]:
    """
    Locked Payment for the event's reference.

    When no Payment row exists but an Order carries the reference (intent
    created before the row was written), the Payment is created here.
    """
    payment = _lock_payment(event.provider_reference)
    if payment is not None:
        return payment

    order = Order.objects.select_for_update().filter(payment_intent_id=event.provider_reference).first()
    if order is None:
        return None
    # Re-check under the order lock: a concurrent delivery may have created it.
    payment = _lock_payment(event.provider_reference)
    if payment is not None:
        return payment
    logger.info("Creating missing Payment for reference %s (order %s)", event.provider_reference, order.order_number)
    return Payment.objects.create(
        payment_intent_id=event.provider_reference,
        order=order,
        status=Payment.STATUS_PENDING,
        gateway=event.gateway.value,
        amount=order.total,
        currency=getattr(settings, "PAYMENT_CURRENCY", "ngn").lower(),
    )


def _on_paid(payment: Payment, order: Order, event: CanonicalEvent) -> bool:
    now = timezone.now()
    payment.status = Payment.STATUS_PAID
    payment.processed_at = event.occurred_at or now
    payment.gateway_response = event.raw_payload
    payment.save(update_fields=["status", "processed_at", "gateway_response", "updated_at"])

    order.payment_status = Order.PAYMENT_PAID
    order.paid_at = event.occurred_at or now
    order.payment_gateway = event.gateway.value
    update_fields = ["payment_status", "paid_at", "payment_gateway", "updated_at"]

    notify = order.confirmation_sent_at is None
    if notify:
        order.confirmation_sent_at = now
        update_fields.append("confirmation_sent_at")
    order.save(update_fields=update_fields)
    logger.info("Order %s paid via %s (%s)", order.order_number, event.gateway.value, event.provider_reference)
    return notify


def _on_failed(payment: Payment, order: Order, event: CanonicalEvent) -> None:
    payment.status = Payment.STATUS_FAILED
    payment.processed_at = event.occurred_at or timezone.now()
    payment.gateway_response = event.raw_payload
    payment.save(update_fields=["status", "processed_at", "gateway_response", "updated_at"])

    if order.payment_status == Order.PAYMENT_PAID:
        logger.warning(
            "Payment %s failed but order %s is already paid by another attempt; order left PAID",
            event.provider_reference, order.order_number,
        )
        return
    order.payment_status = Order.PAYMENT_FAILED
    order.save(update_fields=["payment_status", "updated_at"])
    logger.info("Payment %s failed for order %s", event.provider_reference, order.order_number)


def _transition(payment: Payment, order: Order, event: CanonicalEvent):
    """Returns ``(result, notify)`` for the current Payment status and outcome."""
    if payment.status == Payment.STATUS_PENDING:
        if event.outcome is Outcome.SUCCEEDED:
            return RESULT_PAID, _on_paid(payment, order, event)
        _on_failed(payment, order, event)
        return RESULT_FAILED, False

    if payment.status == Payment.STATUS_PAID:
        if event.outcome is Outcome.SUCCEEDED:
            logger.info("Repeat success for paid payment %s recorded", event.provider_reference)
            return RESULT_AUDIT, False
        logger.warning(
            "Anomaly: FAILED event for PAID payment %s (order %s) ignored",
            event.provider_reference, order.order_number,
        )
        return RESULT_ANOMALY, False

    # FAILED is terminal for this reference
    if event.outcome is Outcome.SUCCEEDED:
        logger.warning(
            "Anomaly: SUCCEEDED event for FAILED payment %s (order %s) ignored",
            event.provider_reference, order.order_number,
        )
        return RESULT_ANOMALY, False
    return RESULT_AUDIT, False


def _record_failure(event: CanonicalEvent, error: Exception) -> None:
    try:
        record, _ = WebhookEvent.objects.get_or_create(
            event_key=event.idempotency_key,
            defaults=_record_defaults(event),
        )
        record.increment_attempts(error_message=f"{error.__class__.__name__}: {error}"[:2000])
        record.deliveries.create(payload=event.raw_payload, result=RESULT_ERROR)
    except Exception:
        logger.exception("Could not record failed attempt for %s", event.idempotency_key)


def _record_defaults(event: CanonicalEvent) -> dict:
    return {
        "gateway": event.gateway.value,
        "event_type": event.event_type,
        "provider_reference": event.provider_reference,
        "outcome": event.outcome.value,
        "event_data": event.raw_payload,
    }


def apply_event(event: CanonicalEvent) -> ReconcileResult:
    """
    Apply one verified gateway event. Safe to call any number of times with
    the same event: only the first application has side effects.
    """
    try:
        with transaction.atomic():
            payment = _locate_payment(event)
            if payment is None:
                logger.info(
                    "No payment or order for %s reference %s; ignoring",
                    event.gateway.value, event.provider_reference,
                )
                return ReconcileResult(RESULT_UNKNOWN)

            order = Order.objects.select_for_update().get(pk=payment.order_id)

            record, created = WebhookEvent.objects.get_or_create(
                event_key=event.idempotency_key,
                defaults=_record_defaults(event),
            )
            if not created and record.processed:
                # Side effects suppressed; the redelivery is still kept for audit
                record.deliveries.create(payload=event.raw_payload, result=RESULT_DUPLICATE)
                logger.info("Duplicate event %s for %s recorded", event.idempotency_key, event.provider_reference)
                return ReconcileResult(RESULT_DUPLICATE, payment.pk, order.pk)

            result, notify = _transition(payment, order, event)

            record.processing_attempts += 1
            record.save(update_fields=["processing_attempts"])
            record.mark_processed(result)
            record.deliveries.create(payload=event.raw_payload, result=result)

            if notify:
                from .post_payment import dispatch_payment_confirmation

                order_id = order.pk
                transaction.on_commit(lambda: dispatch_payment_confirmation(order_id))
    except Exception as exc:
        logger.exception("Reconciliation failed for %s reference %s", event.gateway.value, event.provider_reference)
        _record_failure(event, exc)
        raise

    return ReconcileResult(result, payment.pk, order.pk, notified=notify)


def event_from_record(record: WebhookEvent) -> CanonicalEvent:
    """Rebuild the canonical event stored on a dedup record (for replays)."""
    gateway = Gateway.parse(record.gateway)
    prefix = f"{gateway.value.lower()}:"
    event_id = record.event_key[len(prefix):] if record.event_key.startswith(prefix) else None
    return CanonicalEvent(
        gateway=gateway,
        provider_reference=record.provider_reference,
        outcome=Outcome(record.outcome),
        occurred_at=record.created_at,
        raw_payload=record.event_data or {},
        event_id=event_id,
        event_type=record.event_type,
    )
