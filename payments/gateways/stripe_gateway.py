from __future__ import annotations

import json
import logging
from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, Optional

import stripe
from django.conf import settings
from django.utils import timezone

from core.exceptions import AmountTooSmall, GatewayError, GatewayUnavailable, SignatureError, ValidationError
from core.money import to_minor
from .base import CanonicalEvent, Gateway, IntentHandle, Outcome, PaymentGateway

logger = logging.getLogger(__name__)

SUCCEEDED_EVENTS = {"payment_intent.succeeded"}
FAILED_EVENTS = {"payment_intent.payment_failed"}


def _timestamp(value) -> datetime:
    try:
        return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return timezone.now()


def _as_dict(obj) -> Dict[str, Any]:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict_recursive"):
        return obj.to_dict_recursive()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


class StripeGateway(PaymentGateway):
    """
    Stripe PaymentIntents. The client handoff is the intent's client secret,
    consumed by Stripe Elements on the storefront.
    """

    gateway = Gateway.STRIPE
    supported_currencies = ("ngn", "usd", "gbp", "eur")

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.api_key = api_key if api_key is not None else getattr(settings, "STRIPE_SECRET_KEY", "")
        self.webhook_secret = webhook_secret if webhook_secret is not None else getattr(settings, "STRIPE_WEBHOOK_SECRET", "")
        self.timeout = float(getattr(settings, "GATEWAY_TIMEOUT_SECONDS", 10))

    def _configure(self):
        if not self.api_key:
            raise GatewayError(detail="Stripe is not configured.", code="gateway_not_configured")
        stripe.api_key = self.api_key
        stripe.max_network_retries = 0
        stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout)

    def min_amount_minor(self, currency: str) -> Optional[int]:
        if (currency or "").lower() == "ngn":
            return to_minor(getattr(settings, "STRIPE_MIN_AMOUNT_NGN", 1000))
        return None

    def _translate(self, exc: Exception):
        """Map SDK errors onto retryable vs terminal settlement errors."""
        if isinstance(exc, (stripe.APIConnectionError, stripe.RateLimitError)):
            logger.warning("Stripe unavailable: %s", exc.__class__.__name__)
            return GatewayUnavailable()
        if isinstance(exc, stripe.APIError):
            logger.warning("Stripe API error (%s): %s", getattr(exc, "http_status", None), exc.user_message or exc)
            return GatewayUnavailable()
        if isinstance(exc, stripe.InvalidRequestError) and getattr(exc, "code", None) == "amount_too_small":
            return AmountTooSmall(detail=exc.user_message or AmountTooSmall.default_detail)
        if isinstance(exc, stripe.AuthenticationError):
            logger.error("Stripe rejected our credentials")
            return GatewayError(detail="Payment provider configuration error.")
        message = getattr(exc, "user_message", None) or str(exc) or GatewayError.default_detail
        logger.warning("Stripe rejected request: %s", message)
        return GatewayError(detail=message)

    def create_intent(self, amount_minor, currency, customer_email, metadata, idempotency_key) -> IntentHandle:
        self._configure()
        params: Dict[str, Any] = {
            "amount": int(amount_minor),
            "currency": currency.lower(),
            "automatic_payment_methods": {"enabled": True},
            "metadata": {k: str(v) for k, v in (metadata or {}).items()},
        }
        if customer_email:
            params["receipt_email"] = customer_email
        try:
            intent = stripe.PaymentIntent.create(idempotency_key=idempotency_key, **params)
        except stripe.StripeError as exc:
            raise self._translate(exc)

        logger.info("Stripe PaymentIntent %s created for %s %s", intent.id, amount_minor, currency)
        return IntentHandle(
            gateway=self.gateway,
            provider_reference=intent.id,
            client_handoff={"clientSecret": intent.client_secret},
            amount_minor=int(amount_minor),
            currency=currency.lower(),
            raw={"id": intent.id, "status": getattr(intent, "status", "")},
        )

    def verify_webhook(self, raw_body: bytes, signature_header: str, secret: Optional[str] = None) -> Optional[CanonicalEvent]:
        secret = secret or self.webhook_secret
        if not secret:
            raise GatewayError(detail="Stripe webhook secret is not configured.", code="gateway_not_configured")
        if not signature_header:
            raise SignatureError()
        try:
            stripe.Webhook.construct_event(raw_body, signature_header, secret)
        except stripe.SignatureVerificationError:
            raise SignatureError()
        except ValueError:
            raise ValidationError(detail="Malformed webhook payload.", code="malformed_payload")

        # Signature checked; parse our own copy as plain JSON for storage.
        try:
            payload = json.loads(raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body)
        except (ValueError, UnicodeDecodeError):
            raise ValidationError(detail="Malformed webhook payload.", code="malformed_payload")
        data = (payload.get("data") or {}) if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not isinstance(data.get("object") or {}, dict):
            raise ValidationError(detail="Malformed webhook payload.", code="malformed_payload")
        event_type = str(payload.get("type") or "")
        intent = data.get("object") or {}

        if event_type in SUCCEEDED_EVENTS:
            outcome = Outcome.SUCCEEDED
        elif event_type in FAILED_EVENTS:
            outcome = Outcome.FAILED
        else:
            logger.info("Ignoring Stripe event %s (%s)", payload.get("id"), event_type)
            return None

        reference = str(intent.get("id") or "").strip()
        if not reference:
            raise ValidationError(detail="Webhook payload has no payment reference.", code="malformed_payload")

        return CanonicalEvent(
            gateway=self.gateway,
            provider_reference=reference,
            outcome=outcome,
            occurred_at=_timestamp(payload.get("created")),
            raw_payload=payload,
            event_id=payload.get("id"),
            event_type=event_type,
            amount_minor=intent.get("amount_received") or intent.get("amount"),
        )

    def fetch_outcome(self, reference: str) -> Optional[CanonicalEvent]:
        self._configure()
        try:
            intent = stripe.PaymentIntent.retrieve(reference)
        except stripe.StripeError as exc:
            raise self._translate(exc)

        status = getattr(intent, "status", "")
        if status == "succeeded":
            outcome = Outcome.SUCCEEDED
        elif status == "canceled" or (status == "requires_payment_method" and getattr(intent, "last_payment_error", None)):
            outcome = Outcome.FAILED
        else:
            logger.info("Stripe PaymentIntent %s still %s", reference, status)
            return None

        return CanonicalEvent(
            gateway=self.gateway,
            provider_reference=reference,
            outcome=outcome,
            occurred_at=timezone.now(),
            raw_payload=_as_dict(intent),
            event_type=f"payment_intent.{status}",
            amount_minor=getattr(intent, "amount_received", None) or getattr(intent, "amount", None),
        )
