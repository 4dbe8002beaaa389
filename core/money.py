"""
Fixed-point money helpers.

Every currency amount in the settlement engine is a ``Decimal`` quantized to
2 places with ROUND_HALF_UP, or an ``int`` in minor units (kobo/cents) when
it is summed or sent to a gateway. Floats are converted through ``str`` and
never accumulated.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Union

Number = Union[Decimal, int, str, float]

TWO_PLACES = Decimal("0.01")
MINOR_UNITS = 100


def to_decimal(value: Number | None) -> Decimal:
    """Coerce a number (or numeric string) to Decimal without float drift."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a valid amount: {value!r}")


def q2(value: Number | None) -> Decimal:
    """Round to 2 places, half-up."""
    d = to_decimal(value)
    if not d.is_finite():
        raise ValueError(f"Not a valid amount: {value!r}")
    return d.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_minor(value: Number | None) -> int:
    """Quantize to 2 places first, then convert to integer minor units."""
    return int((q2(value) * MINOR_UNITS).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor(minor: int) -> Decimal:
    return q2(Decimal(int(minor)) / MINOR_UNITS)


def sum_minor(values: Iterable[int]) -> int:
    total = 0
    for v in values:
        total += int(v)
    return total


def percentage_of(amount: Number, rate: Number) -> Decimal:
    """``round2(amount * rate / 100)``; rate is a percentage in [0, 100]."""
    return q2(to_decimal(amount) * to_decimal(rate) / Decimal("100"))


def format_amount(value: Number | None) -> str:
    """2-dp string form, as stored in settings rows and returned by the API."""
    return f"{q2(value):.2f}"
