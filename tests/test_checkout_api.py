from decimal import Decimal

import pytest
from django.db import connection
from django.test.utils import CaptureQueriesContext

from core.models import SiteSetting
from orders.models import Order, OrderItem
from tests.factories import (
    ExtraGroupFactory,
    ExtraItemFactory,
    MenuItemExtraGroupFactory,
    MenuItemFactory,
)

PREPARE_URL = "/api/checkout/prepare/"
ORDERS_URL = "/api/orders/"


@pytest.fixture
def catalog(db):
    """Jollof at 10.00 with a 'Proteins' group (max 1) offering chicken at 2.50."""
    jollof = MenuItemFactory(
        name="Jollof Rice",
        price=Decimal("10.00"),
        variants=[{"name": "Party pack", "price": "45.00"}],
    )
    proteins = ExtraGroupFactory(name="Proteins", min_selections=0, max_selections=1)
    chicken = ExtraItemFactory(group=proteins, name="Chicken", price=Decimal("2.50"))
    beef = ExtraItemFactory(group=proteins, name="Beef", price=Decimal("3.00"))
    MenuItemExtraGroupFactory(menu_item=jollof, extra_group=proteins)

    SiteSetting.put("deliveryFee.standard", "3.00")
    SiteSetting.put("deliveryFee.express", "5.00")
    SiteSetting.put("vat.enabled", "true")
    SiteSetting.put("vat.rate", "7.5")
    return {"jollof": jollof, "proteins": proteins, "chicken": chicken, "beef": beef}


def _payload(catalog, **overrides):
    payload = {
        "customerName": "Ada Obi",
        "customerEmail": "ada@example.com",
        "customerPhone": "08012345678",
        "deliveryAddress": "12 Marina Road",
        "deliveryCity": "Lagos",
        "deliveryMethod": "STANDARD",
        "items": [
            {
                "id": catalog["jollof"].id,
                "name": "Jollof Rice",
                "price": "10.00",
                "quantity": 2,
                "extras": [
                    {"id": catalog["chicken"].id, "groupId": catalog["proteins"].id, "name": "Chicken", "price": "2.50"},
                ],
            }
        ],
    }
    payload.update(overrides)
    return payload


def test_prepare_returns_server_breakdown(api_client, catalog):
    resp = api_client.post(PREPARE_URL, _payload(catalog), format="json")

    assert resp.status_code == 200, resp.content
    body = resp.json()
    assert body["breakdown"] == {
        "subtotal": "25.00",
        "deliveryFee": "3.00",
        "vatRate": "7.50",
        "vatAmount": "1.88",
        "total": "29.88",
    }
    assert body["tempOrderNumber"].startswith("TB-TEMP-")
    assert body["estimatedDelivery"] == "45-60 minutes"
    assert not Order.objects.exists()


def test_prepare_rejects_wrong_client_total(api_client, catalog):
    resp = api_client.post(PREPARE_URL, _payload(catalog, total="29.87"), format="json")

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "totals_mismatch"
    assert body["mismatches"]["total"] == {"expected": "29.88", "received": "29.87"}


def test_client_prices_are_not_trusted(api_client, catalog):
    payload = _payload(catalog)
    payload["items"][0]["price"] = "0.01"
    payload["items"][0]["extras"][0]["price"] = "0.00"

    resp = api_client.post(PREPARE_URL, payload, format="json")

    assert resp.status_code == 200
    assert resp.json()["breakdown"]["subtotal"] == "25.00"


def test_zero_quantity_is_invalid(api_client, catalog):
    payload = _payload(catalog)
    payload["items"][0]["quantity"] = 0

    resp = api_client.post(PREPARE_URL, payload, format="json")

    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_quantity"


def test_unknown_delivery_method(api_client, catalog):
    resp = api_client.post(PREPARE_URL, _payload(catalog, deliveryMethod="DRONE"), format="json")

    assert resp.status_code == 400
    assert resp.json()["code"] == "unknown_delivery_method"


def test_too_many_extras_in_group(api_client, catalog):
    payload = _payload(catalog)
    payload["items"][0]["extras"].append({"id": catalog["beef"].id, "groupId": catalog["proteins"].id})

    resp = api_client.post(PREPARE_URL, payload, format="json")

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "invalid_extras_selection"
    assert body["group_id"] == catalog["proteins"].id


def test_unavailable_item_is_rejected(api_client, catalog):
    catalog["jollof"].is_available = False
    catalog["jollof"].save()

    resp = api_client.post(PREPARE_URL, _payload(catalog), format="json")

    assert resp.status_code == 400
    assert resp.json()["item_id"] == catalog["jollof"].id


def test_empty_cart_is_rejected(api_client, catalog):
    resp = api_client.post(PREPARE_URL, _payload(catalog, items=[]), format="json")

    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"


def test_variant_priced_from_catalog(api_client, catalog):
    payload = _payload(catalog)
    payload["items"][0].update({"variant": "Party pack", "variantPrice": "1.00", "quantity": 1, "extras": []})

    resp = api_client.post(PREPARE_URL, payload, format="json")

    assert resp.status_code == 200
    assert resp.json()["breakdown"]["subtotal"] == "45.00"


def test_unknown_variant_with_price_is_rejected(api_client, catalog):
    payload = _payload(catalog)
    payload["items"][0].update({"variant": "Family", "variantPrice": "20.00"})

    resp = api_client.post(PREPARE_URL, payload, format="json")

    assert resp.status_code == 400


def test_create_order_pins_breakdown_and_lines(api_client, catalog):
    payload = _payload(catalog, total="29.88", specialInstructions="<b>Ring twice</b>")
    payload["items"][0]["measurement"] = "1"
    payload["items"][0]["measurementType"] = "plate"

    resp = api_client.post(ORDERS_URL, payload, format="json")

    assert resp.status_code == 201, resp.content
    body = resp.json()
    assert body["status"] == "PENDING"
    assert body["paymentStatus"] == "UNPAID"
    assert body["breakdown"]["total"] == "29.88"

    order = Order.objects.get(order_number=body["orderNumber"])
    assert order.total == Decimal("29.88")
    assert order.vat_rate == Decimal("7.50")
    assert order.special_instructions == "Ring twice"

    item = OrderItem.objects.get(order=order)
    assert item.quantity == 2
    assert item.unit_price == Decimal("10.00")
    assert item.line_total == Decimal("25.00")
    assert item.measurement_type == "plate"
    assert item.extras == [{
        "id": catalog["chicken"].id,
        "name": "Chicken",
        "price": "2.50",
        "quantity": 1,
        "groupId": catalog["proteins"].id,
        "groupName": "Proteins",
    }]

    # Later settings changes never reprice a placed order
    SiteSetting.put("vat.rate", "20")
    order.refresh_from_db()
    assert order.total == Decimal("29.88")


def test_create_order_links_signed_in_customer(auth_api_client, user, catalog):
    resp = auth_api_client.post(ORDERS_URL, _payload(catalog), format="json")

    assert resp.status_code == 201
    assert Order.objects.get(order_number=resp.json()["orderNumber"]).user == user


def test_create_order_with_mismatch_writes_nothing(api_client, catalog):
    resp = api_client.post(ORDERS_URL, _payload(catalog, total="30.00"), format="json")

    assert resp.status_code == 400
    assert not Order.objects.exists()


def test_track_order(api_client, catalog):
    created = api_client.post(ORDERS_URL, _payload(catalog), format="json").json()

    resp = api_client.get(f"/api/orders/track/{created['orderNumber']}/")

    assert resp.status_code == 200
    body = resp.json()
    assert body["orderNumber"] == created["orderNumber"]
    assert body["items"][0]["lineTotal"] == "25.00"
    assert "customerEmail" not in body


def test_track_unknown_order(api_client, db):
    resp = api_client.get("/api/orders/track/TB-00000000-NOPE/")

    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


def test_menu_lists_items_with_resolved_extras(api_client, catalog):
    resp = api_client.get("/api/menu/")

    assert resp.status_code == 200
    items = resp.json()
    assert [i["name"] for i in items] == ["Jollof Rice"]

    extras = api_client.get(f"/api/menu/{catalog['jollof'].id}/extras/").json()
    assert [g["name"] for g in extras] == ["Proteins"]


def test_menu_listing_query_count_does_not_grow_with_items(api_client, catalog):
    sauces = ExtraGroupFactory(name="Sauces", is_global=True)
    ExtraItemFactory(group=sauces, name="Pepper sauce")

    with CaptureQueriesContext(connection) as one_item:
        assert api_client.get("/api/menu/").status_code == 200

    for n in range(4):
        dish = MenuItemFactory(name=f"Dish {n}")
        sides = ExtraGroupFactory(name=f"Sides {n}")
        ExtraItemFactory(group=sides)
        MenuItemExtraGroupFactory(menu_item=dish, extra_group=sides)

    with CaptureQueriesContext(connection) as five_items:
        resp = api_client.get("/api/menu/")

    items = resp.json()
    assert len(items) == 5
    assert len(five_items.captured_queries) == len(one_item.captured_queries)
    by_name = {i["name"]: i for i in items}
    assert [g["name"] for g in by_name["Dish 0"]["extra_groups"]] == ["Sides 0", "Sauces"]
    assert [g["name"] for g in by_name["Jollof Rice"]["extra_groups"]] == ["Proteins", "Sauces"]
