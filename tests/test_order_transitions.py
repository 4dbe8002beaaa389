import pytest
from django.core import mail

from core.exceptions import StateConflict, ValidationError
from orders.models import Order, OrderStatusHistory
from orders.signals import order_status_changed
from tests.factories import OrderFactory, OrderItemFactory


@pytest.mark.django_db
def test_forward_path_emits_signal_and_writes_history(staff_user):
    order = OrderFactory()

    events = []

    def _receiver(sender, order, old, new, by_user, **kwargs):
        events.append((old, new, getattr(by_user, "id", None)))

    order_status_changed.connect(_receiver)
    try:
        order.transition_to("CONFIRMED", by_user=staff_user)
        order.refresh_from_db()
        assert order.status == Order.STATUS_CONFIRMED
        assert order.confirmed_at is not None

        order.transition_to("preparing", by_user=staff_user)
        order.transition_to(Order.STATUS_READY, by_user=staff_user)
        order.transition_to(Order.STATUS_OUT_FOR_DELIVERY, by_user=staff_user)
        order.transition_to(Order.STATUS_DELIVERED, by_user=staff_user, note="Left with gate man")
        order.refresh_from_db()
        assert order.status == Order.STATUS_DELIVERED
        assert order.delivered_at is not None
        assert order.is_terminal

        history = list(OrderStatusHistory.objects.filter(order=order).order_by("id"))
        assert [(h.previous_status, h.new_status) for h in history] == [
            ("PENDING", "CONFIRMED"),
            ("CONFIRMED", "PREPARING"),
            ("PREPARING", "READY"),
            ("READY", "OUT_FOR_DELIVERY"),
            ("OUT_FOR_DELIVERY", "DELIVERED"),
        ]
        assert history[-1].changed_by == staff_user
        assert history[-1].note == "Left with gate man"

        assert events[0] == (Order.STATUS_PENDING, Order.STATUS_CONFIRMED, staff_user.id)
        assert len(events) == 5
    finally:
        order_status_changed.disconnect(_receiver)


@pytest.mark.django_db
def test_skipping_a_step_is_a_state_conflict():
    order = OrderFactory()

    with pytest.raises(StateConflict) as exc:
        order.transition_to(Order.STATUS_DELIVERED)

    assert exc.value.extra == {"current_status": "PENDING", "requested_status": "DELIVERED"}
    order.refresh_from_db()
    assert order.status == Order.STATUS_PENDING
    assert not OrderStatusHistory.objects.filter(order=order).exists()


@pytest.mark.django_db
@pytest.mark.parametrize("status", [Order.STATUS_PENDING, Order.STATUS_CONFIRMED, Order.STATUS_READY])
def test_cancel_from_any_open_state(status):
    order = OrderFactory(status=status)

    order.transition_to(Order.STATUS_CANCELLED)

    order.refresh_from_db()
    assert order.status == Order.STATUS_CANCELLED
    assert order.cancelled_at is not None


@pytest.mark.django_db
@pytest.mark.parametrize("terminal", [Order.STATUS_DELIVERED, Order.STATUS_CANCELLED])
def test_terminal_states_are_final(terminal):
    order = OrderFactory(status=terminal)

    for target in (Order.STATUS_PENDING, Order.STATUS_CONFIRMED, Order.STATUS_CANCELLED):
        with pytest.raises(StateConflict):
            order.transition_to(target)


@pytest.mark.django_db
def test_unknown_status_is_a_validation_error():
    order = OrderFactory()

    with pytest.raises(ValidationError):
        order.transition_to("SHIPPED")


@pytest.mark.django_db
def test_status_change_leaves_payment_status_alone():
    order = OrderFactory(payment_status=Order.PAYMENT_UNPAID)

    order.transition_to(Order.STATUS_CONFIRMED)

    order.refresh_from_db()
    assert order.payment_status == Order.PAYMENT_UNPAID


@pytest.mark.django_db
def test_customer_is_emailed_after_commit(django_capture_on_commit_callbacks):
    order = OrderFactory(status=Order.STATUS_OUT_FOR_DELIVERY, customer_email="ada@example.com")
    OrderItemFactory(order=order)

    with django_capture_on_commit_callbacks(execute=True):
        order.transition_to(Order.STATUS_DELIVERED)

    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == ["ada@example.com"]
    assert mail.outbox[0].subject == f"Your South Place order {order.order_number} has been delivered"


@pytest.mark.django_db
def test_status_update_email_names_new_status(django_capture_on_commit_callbacks):
    order = OrderFactory(status=Order.STATUS_CONFIRMED)

    with django_capture_on_commit_callbacks(execute=True):
        order.transition_to(Order.STATUS_PREPARING)

    assert len(mail.outbox) == 1
    assert mail.outbox[0].subject == f"Update on your order {order.order_number}: PREPARING"


@pytest.mark.django_db
def test_order_numbers_are_generated_and_unique():
    first, second = OrderFactory(), OrderFactory()

    assert first.order_number.startswith("TB-")
    assert first.order_number != second.order_number
