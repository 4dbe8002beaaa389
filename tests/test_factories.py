import pytest
from django.contrib.auth import get_user_model

from payments.models import Payment
from tests.factories import OrderFactory, PaymentFactory, StaffUserFactory, UserFactory


@pytest.mark.django_db
def test_user_factory_persists_a_usable_password():
    user = UserFactory(password="s3cret-pass")

    stored = get_user_model().objects.get(pk=user.pk)
    assert stored.check_password("s3cret-pass")
    assert not stored.is_staff


@pytest.mark.django_db
def test_staff_user_factory_sets_staff_flag():
    staff = StaffUserFactory()

    stored = get_user_model().objects.get(pk=staff.pk)
    assert stored.is_staff
    assert stored.check_password("password123!")


@pytest.mark.django_db
def test_payment_factory_links_the_order_reference():
    payment = PaymentFactory(gateway=Payment.GATEWAY_PAYSTACK)

    payment.order.refresh_from_db()
    assert payment.order.payment_intent_id == payment.payment_intent_id
    assert payment.order.payment_gateway == Payment.GATEWAY_PAYSTACK
    assert payment.amount == payment.order.total


@pytest.mark.django_db
def test_payment_factory_keeps_an_existing_order_reference():
    order = OrderFactory(payment_intent_id="pi_first", payment_gateway=Payment.GATEWAY_STRIPE)

    retry = PaymentFactory(order=order, payment_intent_id="pi_retry")

    order.refresh_from_db()
    assert order.payment_intent_id == "pi_first"
    assert Payment.objects.filter(order=order, payment_intent_id="pi_retry").exists()
    assert retry.status == Payment.STATUS_PENDING
