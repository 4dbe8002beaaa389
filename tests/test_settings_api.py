import pytest
from django.core import mail

from core.models import SiteSetting
from orders.models import Order, OrderStatusHistory
from tests.factories import OrderFactory


@pytest.mark.django_db
def test_public_settings_fall_back_to_defaults(api_client):
    fees = api_client.get("/api/settings/delivery-fee/")
    vat = api_client.get("/api/settings/vat/")

    assert fees.status_code == 200
    assert fees.json() == {"standard": "3.00", "express": "5.00"}
    assert vat.json() == {"enabled": False, "rate": "0.00"}


@pytest.mark.django_db
def test_admin_updates_delivery_fees(admin_api_client, api_client):
    resp = admin_api_client.put(
        "/api/admin/settings/delivery-fee/", {"standard": "2.5", "express": "6.00"}, format="json"
    )

    assert resp.status_code == 200
    assert resp.json() == {"standard": "2.50", "express": "6.00"}
    assert SiteSetting.objects.get(key="deliveryFee.express").value == "6.00"
    assert api_client.get("/api/settings/delivery-fee/").json()["standard"] == "2.50"


@pytest.mark.django_db
def test_admin_updates_vat(admin_api_client):
    resp = admin_api_client.put("/api/admin/settings/vat/", {"enabled": True, "rate": "7.5"}, format="json")

    assert resp.status_code == 200
    assert resp.json() == {"enabled": True, "rate": "7.50"}


@pytest.mark.django_db
def test_vat_rate_over_100_is_rejected(admin_api_client):
    resp = admin_api_client.put("/api/admin/settings/vat/", {"enabled": True, "rate": "101"}, format="json")

    assert resp.status_code == 400
    assert not SiteSetting.objects.filter(key="vat.rate").exists()


@pytest.mark.django_db
def test_negative_fee_is_rejected(admin_api_client):
    resp = admin_api_client.put(
        "/api/admin/settings/delivery-fee/", {"standard": "-1", "express": "5"}, format="json"
    )

    assert resp.status_code == 400


@pytest.mark.django_db
def test_admin_settings_need_staff(auth_api_client, api_client):
    assert auth_api_client.put("/api/admin/settings/vat/", {"enabled": True, "rate": "5"}, format="json").status_code == 403
    assert api_client.get("/api/admin/settings/delivery-fee/").status_code == 403


@pytest.mark.django_db
def test_operator_advances_order_status(admin_api_client, staff_user, django_capture_on_commit_callbacks):
    order = OrderFactory()

    with django_capture_on_commit_callbacks(execute=True):
        resp = admin_api_client.put(
            f"/api/admin/orders/{order.order_number}/status/",
            {"status": "CONFIRMED", "whatsappSent": True, "note": "Called customer"},
            format="json",
        )

    assert resp.status_code == 200, resp.content
    body = resp.json()
    assert body["status"] == "CONFIRMED"
    assert body["whatsappSent"] is True
    assert body["customerEmail"] == order.customer_email

    history = OrderStatusHistory.objects.get(order=order)
    assert history.changed_by == staff_user
    assert history.note == "Called customer"
    assert len(mail.outbox) == 1


@pytest.mark.django_db
def test_operator_cannot_skip_steps(admin_api_client):
    order = OrderFactory()

    resp = admin_api_client.put(
        f"/api/admin/orders/{order.order_number}/status/", {"status": "DELIVERED"}, format="json"
    )

    assert resp.status_code == 409
    assert resp.json()["code"] == "state_conflict"
    order.refresh_from_db()
    assert order.status == Order.STATUS_PENDING


@pytest.mark.django_db
def test_status_update_unknown_order(admin_api_client):
    resp = admin_api_client.put("/api/admin/orders/TB-0-NONE/status/", {"status": "CONFIRMED"}, format="json")

    assert resp.status_code == 404


@pytest.mark.django_db
def test_customers_cannot_change_status(auth_api_client):
    order = OrderFactory()

    resp = auth_api_client.put(f"/api/admin/orders/{order.order_number}/status/", {"status": "CONFIRMED"}, format="json")

    assert resp.status_code == 403
