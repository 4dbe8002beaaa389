from decimal import Decimal
from itertools import permutations

import pytest

from core.exceptions import InvalidQuantity, TotalsMismatch, UnknownDeliveryMethod
from core.models import SiteSetting
from orders.pricing import (
    CartLine,
    CartLineExtra,
    DeliveryMethod,
    PricingConfig,
    VatConfig,
    compute_total,
    cross_validate,
    load_pricing_config,
    save_delivery_fees,
    save_vat,
)

VAT_7_5 = PricingConfig(
    standard_fee=Decimal("3.00"),
    express_fee=Decimal("5.00"),
    vat=VatConfig(enabled=True, rate=Decimal("7.5")),
)


def _line(price="10.00", qty=2, extras=("2.50",), variant_price=None):
    return CartLine(
        catalog_item_id=1,
        unit_price=Decimal(price),
        quantity=qty,
        variant_price=Decimal(variant_price) if variant_price is not None else None,
        extras=tuple(
            CartLineExtra(extra_item_id=100 + i, unit_price=Decimal(p)) for i, p in enumerate(extras)
        ),
    )


def test_standard_delivery_with_vat():
    breakdown = compute_total([_line()], "STANDARD", VAT_7_5)

    # 2 x (10.00 + 2.50) = 25.00; VAT 1.875 rounds half-up once
    assert breakdown.subtotal == Decimal("25.00")
    assert breakdown.delivery_fee == Decimal("3.00")
    assert breakdown.vat_rate == Decimal("7.50")
    assert breakdown.vat_amount == Decimal("1.88")
    assert breakdown.total == Decimal("29.88")
    assert breakdown.as_dict() == {
        "subtotal": "25.00",
        "deliveryFee": "3.00",
        "vatRate": "7.50",
        "vatAmount": "1.88",
        "total": "29.88",
    }


def test_client_total_off_by_a_cent_is_rejected():
    breakdown = compute_total([_line()], DeliveryMethod.STANDARD, VAT_7_5)

    with pytest.raises(TotalsMismatch) as exc:
        cross_validate(breakdown, {"total": "29.87"})

    assert exc.value.extra["mismatches"]["total"] == {"expected": "29.88", "received": "29.87"}


def test_matching_client_amounts_pass():
    breakdown = compute_total([_line()], "standard", VAT_7_5)

    cross_validate(breakdown, {"subtotal": "25.00", "deliveryFee": "3", "vatAmount": "1.88", "total": "29.88"})
    cross_validate(breakdown, {})


def test_vat_disabled_ignores_rate():
    config = PricingConfig(vat=VatConfig(enabled=False, rate=Decimal("7.5")))

    breakdown = compute_total([_line()], "EXPRESS", config)

    assert breakdown.vat_amount == Decimal("0.00")
    assert breakdown.vat_rate == Decimal("0.00")
    assert breakdown.total == Decimal("30.00")


def test_variant_price_replaces_base_price():
    breakdown = compute_total([_line(price="10.00", qty=1, extras=(), variant_price="12.50")], "STANDARD", PricingConfig())

    assert breakdown.subtotal == Decimal("12.50")


def test_extra_quantities_multiply():
    line = CartLine(
        catalog_item_id=1,
        unit_price=Decimal("5.00"),
        quantity=3,
        extras=(CartLineExtra(extra_item_id=1, unit_price=Decimal("0.35"), quantity=2),),
    )

    assert compute_total([line], "STANDARD", PricingConfig()).subtotal == Decimal("17.10")


def test_subtotal_sums_in_minor_units():
    lines = [_line(price="0.10", qty=1, extras=()) for _ in range(3)]

    assert compute_total(lines, "STANDARD", PricingConfig()).subtotal == Decimal("0.30")


def test_total_is_sum_of_parts():
    config = PricingConfig(vat=VatConfig(enabled=True, rate=Decimal("12.25")))
    lines = [_line(price="3.33", qty=7, extras=("0.99", "1.01")), _line(price="19.99", qty=1, extras=())]

    b = compute_total(lines, "EXPRESS", config)

    assert b.total == b.subtotal + b.delivery_fee + b.vat_amount


def test_line_order_does_not_change_the_breakdown():
    lines = [
        _line(price="3.33", qty=7, extras=("0.99", "1.01")),
        _line(price="19.99", qty=1, extras=()),
        _line(price="0.10", qty=3, extras=("0.05",), variant_price="0.15"),
        _line(price="45.00", qty=2, extras=("2.50", "2.50")),
    ]
    expected = compute_total(lines, "EXPRESS", VAT_7_5).as_dict()

    for ordering in permutations(lines):
        assert compute_total(list(ordering), "EXPRESS", VAT_7_5).as_dict() == expected


@pytest.mark.parametrize("qty", [0, -1, 1.5, "two", True])
def test_bad_quantities(qty):
    with pytest.raises(InvalidQuantity):
        compute_total([_line(qty=qty)], "STANDARD", PricingConfig())


def test_unknown_delivery_method():
    with pytest.raises(UnknownDeliveryMethod):
        compute_total([_line()], "DRONE", PricingConfig())


@pytest.mark.django_db
def test_pricing_config_reads_settings_rows():
    SiteSetting.put("deliveryFee.standard", "4.00")
    SiteSetting.put("deliveryFee.express", "7.50")
    SiteSetting.put("vat.enabled", "true")
    SiteSetting.put("vat.rate", "7.5")

    config = load_pricing_config()

    assert config.standard_fee == Decimal("4.00")
    assert config.express_fee == Decimal("7.50")
    assert config.vat == VatConfig(enabled=True, rate=Decimal("7.50"))


@pytest.mark.django_db
def test_pricing_config_falls_back_on_missing_or_malformed_rows():
    SiteSetting.put("deliveryFee.standard", "lots")
    SiteSetting.put("vat.rate", "250")

    config = load_pricing_config()

    assert config.standard_fee == Decimal("3.00")
    assert config.express_fee == Decimal("5.00")
    assert config.vat.enabled is False
    assert config.vat.rate == Decimal("0.00")


@pytest.mark.django_db
def test_saving_settings_round_trips_as_two_place_strings():
    save_delivery_fees(Decimal("2.5"), Decimal("6"))
    config = save_vat(True, Decimal("7.5"))

    assert SiteSetting.objects.get(key="deliveryFee.standard").value == "2.50"
    assert SiteSetting.objects.get(key="vat.rate").value == "7.50"
    assert config.delivery_fee(DeliveryMethod.EXPRESS) == Decimal("6.00")
