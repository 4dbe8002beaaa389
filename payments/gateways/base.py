"""
Gateway adapter contract.

Each provider adapter turns its own API and webhook dialect into the same
small vocabulary: an ``IntentHandle`` when a payment is started and a
``CanonicalEvent`` (SUCCEEDED / FAILED) when its outcome is known. Nothing
above this layer looks at provider payloads.
"""
from __future__ import annotations

import abc
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional

from django.conf import settings

from core.exceptions import GatewayUnavailable, ValidationError

logger = logging.getLogger(__name__)


class Gateway(str, Enum):
    STRIPE = "STRIPE"
    PAYSTACK = "PAYSTACK"

    @classmethod
    def parse(cls, value) -> "Gateway":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            raise ValidationError(
                detail=f"Unsupported payment gateway: {value!r}",
                code="unsupported_gateway",
            )


class Outcome(str, Enum):
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class IntentHandle:
    """What the client needs to complete payment; ``client_handoff`` is opaque."""
    gateway: Gateway
    provider_reference: str
    client_handoff: Dict[str, Any]
    amount_minor: int
    currency: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CanonicalEvent:
    gateway: Gateway
    provider_reference: str
    outcome: Outcome
    occurred_at: datetime
    raw_payload: Dict[str, Any] = field(default_factory=dict)
    event_id: Optional[str] = None
    event_type: str = ""
    amount_minor: Optional[int] = None

    @property
    def idempotency_key(self) -> str:
        """Provider event id, else ``{reference}:{outcome}``."""
        if self.event_id:
            return f"{self.gateway.value.lower()}:{self.event_id}"
        return f"{self.provider_reference}:{self.outcome.value}"


class PaymentGateway(abc.ABC):
    """Adapter base class. Subclasses must not let provider SDK errors escape."""

    gateway: Gateway
    supported_currencies: Iterable[str] = ()

    def supports_currency(self, currency: str) -> bool:
        return (currency or "").lower() in {c.lower() for c in self.supported_currencies}

    def min_amount_minor(self, currency: str) -> Optional[int]:
        """Smallest chargeable amount in minor units, or None when unknown."""
        return None

    @abc.abstractmethod
    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        customer_email: Optional[str],
        metadata: Dict[str, Any],
        idempotency_key: str,
    ) -> IntentHandle:
        raise NotImplementedError

    @abc.abstractmethod
    def verify_webhook(self, raw_body: bytes, signature_header: str, secret: Optional[str] = None) -> Optional[CanonicalEvent]:
        """
        Authenticate and parse a webhook delivery.

        Raises ``SignatureError`` on a bad signature and ``ValidationError``
        on a malformed body. Returns None for event types that carry no
        payment outcome.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_outcome(self, reference: str) -> Optional[CanonicalEvent]:
        """Ask the provider for a payment's outcome; None while still in flight."""
        raise NotImplementedError


def call_with_retries(fn: Callable[[], Any], retries: Optional[int] = None, base: Optional[float] = None, factor: float = 2.0):
    """
    Run ``fn``, retrying ``GatewayUnavailable`` with exponential backoff.

    Terminal gateway errors propagate immediately. The caller must make
    ``fn`` safe to repeat (same idempotency key on every attempt).
    """
    retries = int(getattr(settings, "GATEWAY_MAX_RETRIES", 2) if retries is None else retries)
    delay = float(getattr(settings, "GATEWAY_RETRY_BACKOFF_SECONDS", 0.5) if base is None else base)
    attempt = 0
    while True:
        try:
            return fn()
        except GatewayUnavailable:
            if attempt >= retries:
                raise
            attempt += 1
            logger.warning("Gateway unavailable, retry %s/%s in %ss", attempt, retries, round(delay, 2))
            if delay > 0:
                time.sleep(delay)
            delay *= factor
