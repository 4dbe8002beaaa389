"""
Payment orchestration: starting payments and verifying their outcome.

``initiate`` is the only place a payment intent is created. It checks the
order can be charged, calls the gateway (retrying transient failures with
one idempotency key), and writes a PENDING ``Payment`` before the handle is
returned to the client.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import transaction

from core.exceptions import AmountTooSmall, NotFound, StateConflict, TotalsMismatch, ValidationError
from core.money import format_amount, from_minor, q2, to_minor
from orders.models import Order
from .gateways import CanonicalEvent, Gateway, IntentHandle, Outcome, call_with_retries, get_gateway
from .models import Payment
from .reconciliation import ReconcileResult, apply_event

logger = logging.getLogger(__name__)


def _currency(currency: Optional[str]) -> str:
    return (currency or getattr(settings, "PAYMENT_CURRENCY", "ngn") or "ngn").lower()


def _idempotency_key(order: Order) -> str:
    return f"{order.order_number}-{uuid.uuid4().hex[:12]}"


def _intent_metadata(order: Order, extra: Optional[Dict[str, Any]], user=None) -> Dict[str, Any]:
    customer = user if getattr(user, "is_authenticated", False) else order.user
    metadata = dict(extra or {})
    metadata.update({
        "orderNumber": order.order_number,
        "orderId": str(order.pk),
        "customerId": str(customer.pk) if customer is not None else "guest",
    })
    return metadata


def initiate(
    order: Order,
    gateway_choice,
    amount=None,
    currency: Optional[str] = None,
    customer_email: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    user=None,
) -> IntentHandle:
    gateway = get_gateway(gateway_choice)
    currency = _currency(currency)

    if order.is_paid:
        raise StateConflict(detail=f"Order {order.order_number} is already paid.")
    if order.status == Order.STATUS_CANCELLED:
        raise StateConflict(detail=f"Order {order.order_number} is cancelled.")

    total = q2(order.total)
    if total <= 0:
        raise ValidationError(detail="Order total must be greater than zero.", code="invalid_amount")
    if amount is not None and q2(amount) != total:
        raise TotalsMismatch(mismatches={"amount": {"expected": format_amount(total), "received": format_amount(amount)}})
    if not gateway.supports_currency(currency):
        raise ValidationError(
            detail=f"{gateway.gateway.value.title()} does not support {currency.upper()}.",
            code="unsupported_currency",
        )

    amount_minor = to_minor(total)
    floor = gateway.min_amount_minor(currency)
    if floor is not None and amount_minor < floor:
        minimum = format_amount(from_minor(floor))
        raise AmountTooSmall(
            detail=f"The minimum amount for card payments is {minimum} {currency.upper()}.",
            minimum=minimum,
            currency=currency.upper(),
        )

    key = _idempotency_key(order)
    email = customer_email or order.customer_email
    meta = _intent_metadata(order, metadata, user=user)
    handle = call_with_retries(
        lambda: gateway.create_intent(amount_minor, currency, email, meta, key)
    )

    with transaction.atomic():
        locked = Order.objects.select_for_update().get(pk=order.pk)
        Payment.objects.create(
            payment_intent_id=handle.provider_reference,
            order=locked,
            status=Payment.STATUS_PENDING,
            gateway=handle.gateway.value,
            amount=total,
            currency=currency,
            gateway_response=handle.raw,
        )
        locked.payment_intent_id = handle.provider_reference
        locked.payment_gateway = handle.gateway.value
        locked.save(update_fields=["payment_intent_id", "payment_gateway", "updated_at"])

    order.payment_intent_id = handle.provider_reference
    order.payment_gateway = handle.gateway.value
    logger.info(
        "Payment %s started for order %s via %s (%s %s)",
        handle.provider_reference, order.order_number, handle.gateway.value, format_amount(total), currency,
    )
    return handle


def verify_and_reconcile(order: Order, reference: Optional[str] = None) -> Optional[ReconcileResult]:
    """
    Pull the current outcome of ``order``'s payment from its gateway and feed
    it through reconciliation. Returns None while the payment is in flight.
    """
    if order.is_paid:
        return None

    reference = reference or order.payment_intent_id
    if not reference:
        raise ValidationError(detail="No payment has been started for this order.", code="no_payment")

    payment = Payment.objects.filter(payment_intent_id=reference).first()
    if payment is not None and payment.order_id != order.pk:
        raise NotFound(detail="Payment reference does not belong to this order.")
    if payment is None and order.payment_intent_id != reference:
        raise NotFound(detail="Payment reference does not belong to this order.")

    gateway_name = payment.gateway if payment is not None else (order.payment_gateway or Gateway.STRIPE.value)
    gateway = get_gateway(gateway_name)
    event: Optional[CanonicalEvent] = call_with_retries(lambda: gateway.fetch_outcome(reference))
    if event is None:
        return None

    if event.outcome is Outcome.SUCCEEDED and event.amount_minor is not None:
        expected = to_minor(order.total)
        if int(event.amount_minor) != expected:
            logger.warning(
                "Verified amount %s for %s does not match order %s total %s",
                event.amount_minor, reference, order.order_number, expected,
            )
            raise TotalsMismatch(
                detail="The paid amount does not match the order total.",
                mismatches={"total": {"expected": format_amount(order.total), "received": format_amount(from_minor(event.amount_minor))}},
            )

    return apply_event(event)


def handle_webhook(gateway_choice, raw_body: bytes, signature_header: str) -> Optional[ReconcileResult]:
    """
    Verify a webhook delivery and apply it. ``SignatureError`` and malformed
    payloads propagate to the view before any state is touched.
    """
    gateway = get_gateway(gateway_choice)
    event = gateway.verify_webhook(raw_body, signature_header)
    if event is None:
        return None
    return apply_event(event)
