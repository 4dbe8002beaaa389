from __future__ import annotations

from .base import CanonicalEvent, Gateway, IntentHandle, Outcome, PaymentGateway, call_with_retries
from .paystack import PaystackGateway
from .stripe_gateway import StripeGateway

_REGISTRY = {
    Gateway.STRIPE: StripeGateway,
    Gateway.PAYSTACK: PaystackGateway,
}


def get_gateway(choice) -> PaymentGateway:
    """Adapter for a gateway name or ``Gateway`` member; settings are read per call."""
    return _REGISTRY[Gateway.parse(choice)]()


__all__ = [
    "CanonicalEvent",
    "Gateway",
    "IntentHandle",
    "Outcome",
    "PaymentGateway",
    "PaystackGateway",
    "StripeGateway",
    "call_with_retries",
    "get_gateway",
]
