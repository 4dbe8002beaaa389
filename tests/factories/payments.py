import factory

from payments import models as payment_models
from .orders import OrderFactory


class PaymentFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = payment_models.Payment
        skip_postgeneration_save = True

    order = factory.SubFactory(OrderFactory)
    payment_intent_id = factory.Sequence(lambda n: f"pi_test_{n:06d}")
    status = payment_models.Payment.STATUS_PENDING
    gateway = payment_models.Payment.GATEWAY_STRIPE
    amount = factory.SelfAttribute("order.total")
    currency = "ngn"

    @factory.post_generation
    def link_order(self, create, extracted, **kwargs):
        # The order points at its latest attempt
        if create and not self.order.payment_intent_id:
            self.order.payment_intent_id = self.payment_intent_id
            self.order.payment_gateway = self.gateway
            self.order.save(update_fields=["payment_intent_id", "payment_gateway"])


class WebhookEventFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = payment_models.WebhookEvent

    event_key = factory.Sequence(lambda n: f"stripe:evt_{n:06d}")
    gateway = payment_models.Payment.GATEWAY_STRIPE
    event_type = "payment_intent.succeeded"
    provider_reference = factory.Sequence(lambda n: f"pi_test_{n:06d}")
    outcome = "SUCCEEDED"
    processed = True
    result = "paid"
