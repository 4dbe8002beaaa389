from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from core.exceptions import GatewayError, GatewayUnavailable, SignatureError, ValidationError
from .base import CanonicalEvent, Gateway, IntentHandle, Outcome, PaymentGateway

logger = logging.getLogger(__name__)

SUCCEEDED_EVENTS = {"charge.success"}
FAILED_EVENTS = {"charge.failed"}

# Transaction statuses returned by /transaction/verify
_VERIFY_OUTCOMES = {
    "success": Outcome.SUCCEEDED,
    "failed": Outcome.FAILED,
    "reversed": Outcome.FAILED,
    "abandoned": Outcome.FAILED,
}


def signature_for(raw_body: bytes, secret: str) -> str:
    """Hex HMAC-SHA512 of the raw body, as sent in ``x-paystack-signature``."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


def _paid_at(value):
    if value:
        try:
            parsed = parse_datetime(str(value))
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    return timezone.now()


class PaystackClient:
    """Thin requests.Session wrapper around the Paystack REST API."""

    def __init__(self, secret_key: str, base_url: str, timeout: float):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {secret_key}",
            "Content-Type": "application/json",
        })

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = self._url(path)
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("Network error calling Paystack %s %s: %s", method, path, exc.__class__.__name__)
            raise GatewayUnavailable()

        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.status_code >= 500 or resp.status_code == 429:
            logger.warning("Paystack %s %s returned HTTP %s", method, path, resp.status_code)
            raise GatewayUnavailable()
        if resp.status_code >= 400 or not isinstance(data, dict) or not data.get("status"):
            message = (data or {}).get("message") if isinstance(data, dict) else None
            logger.warning("Paystack rejected %s %s (HTTP %s): %s", method, path, resp.status_code, message)
            raise GatewayError(detail=message or "Paystack request failed")
        return data


class PaystackGateway(PaymentGateway):
    """
    Paystack transactions. The client handoff is the hosted checkout
    ``authorizationUrl`` plus ``accessCode`` for the inline popup.
    """

    gateway = Gateway.PAYSTACK
    supported_currencies = ("ngn", "ghs", "zar", "kes", "usd")

    def __init__(self, secret_key: Optional[str] = None, base_url: Optional[str] = None, callback_url: Optional[str] = None):
        self.secret_key = secret_key if secret_key is not None else getattr(settings, "PAYSTACK_SECRET_KEY", "")
        self.base_url = base_url or getattr(settings, "PAYSTACK_BASE_URL", "https://api.paystack.co")
        self.callback_url = callback_url if callback_url is not None else getattr(settings, "PAYSTACK_CALLBACK_URL", "")
        self.timeout = float(getattr(settings, "GATEWAY_TIMEOUT_SECONDS", 10))

    def _client(self) -> PaystackClient:
        if not self.secret_key:
            raise GatewayError(detail="Paystack is not configured.", code="gateway_not_configured")
        return PaystackClient(self.secret_key, self.base_url, self.timeout)

    def create_intent(self, amount_minor, currency, customer_email, metadata, idempotency_key) -> IntentHandle:
        if not customer_email:
            raise ValidationError(detail="customerEmail is required for Paystack payments.")
        payload: Dict[str, Any] = {
            "amount": int(amount_minor),
            "email": customer_email,
            "currency": currency.upper(),
            # Our reference doubles as the idempotency key: Paystack rejects
            # a second initialize with the same reference.
            "reference": idempotency_key,
            "metadata": metadata or {},
        }
        if self.callback_url:
            payload["callback_url"] = self.callback_url

        data = self._client().request("POST", "/transaction/initialize", json=payload).get("data") or {}
        reference = data.get("reference") or idempotency_key
        logger.info("Paystack transaction %s initialized for %s %s", reference, amount_minor, currency)
        return IntentHandle(
            gateway=self.gateway,
            provider_reference=reference,
            client_handoff={
                "authorizationUrl": data.get("authorization_url"),
                "accessCode": data.get("access_code"),
                "reference": reference,
            },
            amount_minor=int(amount_minor),
            currency=currency.lower(),
            raw=data,
        )

    def verify_webhook(self, raw_body: bytes, signature_header: str, secret: Optional[str] = None) -> Optional[CanonicalEvent]:
        secret = secret or self.secret_key
        if not secret:
            raise GatewayError(detail="Paystack secret key is not configured.", code="gateway_not_configured")
        if isinstance(raw_body, str):
            raw_body = raw_body.encode("utf-8")
        expected = signature_for(raw_body, secret)
        if not signature_header or not hmac.compare_digest(expected, signature_header.strip().lower()):
            raise SignatureError()

        try:
            payload = json.loads(raw_body.decode("utf-8"))
        except (ValueError, UnicodeDecodeError):
            raise ValidationError(detail="Malformed webhook payload.", code="malformed_payload")
        if not isinstance(payload, dict) or not isinstance(payload.get("data") or {}, dict):
            raise ValidationError(detail="Malformed webhook payload.", code="malformed_payload")
        data = payload.get("data") or {}
        event_type = str(payload.get("event") or "")

        if event_type in SUCCEEDED_EVENTS:
            outcome = Outcome.SUCCEEDED
        elif event_type in FAILED_EVENTS:
            outcome = Outcome.FAILED
        else:
            logger.info("Ignoring Paystack event %s", event_type or "(none)")
            return None

        reference = str(data.get("reference") or "").strip()
        if not reference:
            raise ValidationError(detail="Webhook payload has no payment reference.", code="malformed_payload")

        return CanonicalEvent(
            gateway=self.gateway,
            provider_reference=reference,
            outcome=outcome,
            occurred_at=_paid_at(data.get("paid_at")) if outcome is Outcome.SUCCEEDED else timezone.now(),
            raw_payload=payload,
            event_type=event_type,
            amount_minor=data.get("amount"),
        )

    def fetch_outcome(self, reference: str) -> Optional[CanonicalEvent]:
        data = self._client().request("GET", f"/transaction/verify/{quote(reference, safe='')}").get("data") or {}
        status = str(data.get("status") or "").lower()
        outcome = _VERIFY_OUTCOMES.get(status)
        if outcome is None:
            logger.info("Paystack transaction %s still %s", reference, status or "unknown")
            return None
        return CanonicalEvent(
            gateway=self.gateway,
            provider_reference=data.get("reference") or reference,
            outcome=outcome,
            occurred_at=_paid_at(data.get("paid_at")) if outcome is Outcome.SUCCEEDED else timezone.now(),
            raw_payload=data,
            event_type=f"transaction.{status}",
            amount_minor=data.get("amount"),
        )
