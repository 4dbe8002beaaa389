"""
Authoritative order pricing.

``compute_total`` derives a ``PriceBreakdown`` from cart lines, the delivery
method and a ``PricingConfig``. Line arithmetic runs in integer minor units;
each derived field is rounded half-up to 2 places exactly once. Client
totals are never trusted: ``cross_validate`` rejects any that differ.

``PricingConfig`` is loaded per request from ``core.SiteSetting`` rows and
passed in explicitly. Missing or malformed rows fall back to defaults so
checkout keeps working.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Sequence

from core.exceptions import InvalidQuantity, TotalsMismatch, UnknownDeliveryMethod, ValidationError
from core.money import format_amount, from_minor, percentage_of, q2, to_decimal, to_minor

logger = logging.getLogger(__name__)

DELIVERY_FEE_STANDARD_KEY = "deliveryFee.standard"
DELIVERY_FEE_EXPRESS_KEY = "deliveryFee.express"
VAT_ENABLED_KEY = "vat.enabled"
VAT_RATE_KEY = "vat.rate"

DEFAULT_STANDARD_FEE = Decimal("3.00")
DEFAULT_EXPRESS_FEE = Decimal("5.00")
DEFAULT_VAT_RATE = Decimal("0.00")


class DeliveryMethod(str, Enum):
    STANDARD = "STANDARD"
    EXPRESS = "EXPRESS"

    @classmethod
    def parse(cls, value) -> "DeliveryMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            raise UnknownDeliveryMethod(detail=f"Unknown delivery method: {value!r}")

    @property
    def estimated_delivery(self) -> str:
        return "30-45 minutes" if self is DeliveryMethod.EXPRESS else "45-60 minutes"


@dataclass(frozen=True)
class VatConfig:
    enabled: bool = False
    rate: Decimal = DEFAULT_VAT_RATE


@dataclass(frozen=True)
class PricingConfig:
    standard_fee: Decimal = DEFAULT_STANDARD_FEE
    express_fee: Decimal = DEFAULT_EXPRESS_FEE
    vat: VatConfig = field(default_factory=VatConfig)

    def delivery_fee(self, method: DeliveryMethod) -> Decimal:
        method = DeliveryMethod.parse(method)
        return q2(self.express_fee if method is DeliveryMethod.EXPRESS else self.standard_fee)


@dataclass(frozen=True)
class CartLineExtra:
    extra_item_id: int
    unit_price: Decimal
    group_id: Optional[int] = None
    quantity: int = 1
    name: str = ""


@dataclass(frozen=True)
class CartLine:
    catalog_item_id: int
    unit_price: Decimal
    quantity: int
    variant_price: Optional[Decimal] = None
    extras: Sequence[CartLineExtra] = ()
    name: str = ""
    variant: str = ""

    def unit_total_minor(self) -> int:
        """Per-unit price in minor units: variant price, else base price, plus extras."""
        base = self.variant_price if self.variant_price is not None else self.unit_price
        total = to_minor(base)
        for extra in self.extras:
            total += to_minor(extra.unit_price) * int(extra.quantity or 1)
        return total

    def line_total_minor(self) -> int:
        return self.unit_total_minor() * int(self.quantity)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    delivery_fee: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total: Decimal

    def as_dict(self) -> Dict[str, str]:
        return {
            "subtotal": format_amount(self.subtotal),
            "deliveryFee": format_amount(self.delivery_fee),
            "vatRate": format_amount(self.vat_rate),
            "vatAmount": format_amount(self.vat_amount),
            "total": format_amount(self.total),
        }


def check_quantity(quantity) -> int:
    if isinstance(quantity, bool):
        raise InvalidQuantity()
    try:
        q = int(quantity)
    except (TypeError, ValueError):
        raise InvalidQuantity()
    if q != quantity and str(q) != str(quantity).strip():
        raise InvalidQuantity()
    if q <= 0:
        raise InvalidQuantity(detail=f"Quantity must be at least 1 (got {quantity}).")
    return q


def compute_total(lines: Iterable[CartLine], delivery_method, config: PricingConfig) -> PriceBreakdown:
    method = DeliveryMethod.parse(delivery_method)
    subtotal_minor = 0
    for line in lines:
        check_quantity(line.quantity)
        for extra in line.extras:
            check_quantity(extra.quantity)
        subtotal_minor += line.line_total_minor()

    subtotal = from_minor(subtotal_minor)
    delivery_fee = config.delivery_fee(method)
    vat_rate = q2(config.vat.rate) if config.vat.enabled else Decimal("0.00")
    vat_amount = percentage_of(subtotal, vat_rate) if config.vat.enabled else Decimal("0.00")
    total = q2(subtotal + delivery_fee + vat_amount)
    return PriceBreakdown(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        vat_rate=vat_rate,
        vat_amount=vat_amount,
        total=total,
    )


_CLIENT_FIELDS = (
    ("subtotal", "subtotal"),
    ("deliveryFee", "delivery_fee"),
    ("vatAmount", "vat_amount"),
    ("total", "total"),
)


def cross_validate(computed: PriceBreakdown, client: Mapping) -> None:
    """
    Compare client-declared amounts with the server breakdown at 2 dp.

    Only fields the client actually sent are compared. Any difference raises
    ``TotalsMismatch``; nothing is clamped or corrected.
    """
    mismatches = {}
    for client_key, attr in _CLIENT_FIELDS:
        raw = client.get(client_key)
        if raw is None or raw == "":
            continue
        try:
            declared = q2(raw)
        except ValueError:
            raise ValidationError(detail=f"{client_key} is not a valid amount.")
        expected = getattr(computed, attr)
        if declared != expected:
            mismatches[client_key] = {"expected": format_amount(expected), "received": format_amount(declared)}
    if mismatches:
        logger.warning("Client totals rejected: %s", mismatches)
        raise TotalsMismatch(mismatches=mismatches)


# ---------------------------------------------------------------------------
# Runtime configuration
# ---------------------------------------------------------------------------

def _read_amount(raw: Optional[str], default: Decimal, key: str) -> Decimal:
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = q2(raw)
    except ValueError:
        logger.warning("Malformed setting %s=%r, using default %s", key, raw, default)
        return default
    if value < 0:
        logger.warning("Negative setting %s=%r, using default %s", key, raw, default)
        return default
    return value


def load_pricing_config() -> PricingConfig:
    """Read pricing settings once; fall back to defaults if the store is unreadable."""
    from core.models import SiteSetting
    from django.db import DatabaseError

    keys = (DELIVERY_FEE_STANDARD_KEY, DELIVERY_FEE_EXPRESS_KEY, VAT_ENABLED_KEY, VAT_RATE_KEY)
    try:
        rows = SiteSetting.get_values(keys)
    except DatabaseError:
        logger.exception("Pricing settings unavailable, using defaults")
        rows = {}

    rate = _read_amount(rows.get(VAT_RATE_KEY), DEFAULT_VAT_RATE, VAT_RATE_KEY)
    if rate > 100:
        logger.warning("VAT rate %s out of range, using default", rate)
        rate = DEFAULT_VAT_RATE
    return PricingConfig(
        standard_fee=_read_amount(rows.get(DELIVERY_FEE_STANDARD_KEY), DEFAULT_STANDARD_FEE, DELIVERY_FEE_STANDARD_KEY),
        express_fee=_read_amount(rows.get(DELIVERY_FEE_EXPRESS_KEY), DEFAULT_EXPRESS_FEE, DELIVERY_FEE_EXPRESS_KEY),
        vat=VatConfig(
            enabled=str(rows.get(VAT_ENABLED_KEY, "false")).strip().lower() == "true",
            rate=rate,
        ),
    )


def save_delivery_fees(standard, express) -> PricingConfig:
    from core.models import SiteSetting

    standard, express = to_decimal(standard), to_decimal(express)
    if standard < 0 or express < 0:
        raise ValidationError(detail="Delivery fees must be zero or greater.")
    SiteSetting.put(DELIVERY_FEE_STANDARD_KEY, format_amount(standard))
    SiteSetting.put(DELIVERY_FEE_EXPRESS_KEY, format_amount(express))
    logger.info("Delivery fees updated: standard=%s express=%s", format_amount(standard), format_amount(express))
    return load_pricing_config()


def save_vat(enabled: bool, rate) -> PricingConfig:
    from core.models import SiteSetting

    rate = to_decimal(rate)
    if rate < 0 or rate > 100:
        raise ValidationError(detail="VAT rate must be between 0 and 100.")
    SiteSetting.put(VAT_ENABLED_KEY, "true" if enabled else "false")
    SiteSetting.put(VAT_RATE_KEY, format_amount(rate))
    logger.info("VAT updated: enabled=%s rate=%s", enabled, format_amount(rate))
    return load_pricing_config()
