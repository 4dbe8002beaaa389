import json
import hmac
import hashlib
from decimal import Decimal
from unittest.mock import patch

from django.core import mail
from django.test import TestCase, Client, override_settings
from django.urls import reverse
from django.utils import timezone

from orders.models import Order, OrderItem
from menu.models import MenuItem, MenuCategory
from payments.gateways.paystack import signature_for
from payments.models import Payment, WebhookEvent

WEBHOOK_SETTINGS = dict(
    STRIPE_SECRET_KEY='sk_test_dummy',
    STRIPE_WEBHOOK_SECRET='whsec_test_secret',
    PAYSTACK_SECRET_KEY='sk_test_paystack',
    STAFF_NOTIFICATION_EMAILS=['kitchen@example.com'],
    EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend',
)


class WebhookTestMixin:
    """Order with one PENDING payment attempt, as left by checkout."""

    reference = 'pi_test_webhook_123'
    gateway = Payment.GATEWAY_STRIPE

    def setUp(self):
        self.client = Client()

        self.category = MenuCategory.objects.create(name='Webhook Category')
        self.menu_item = MenuItem.objects.create(
            name='Webhook Item',
            price=Decimal('2500.00'),
            category=self.category,
            is_available=True
        )

        self.order = Order.objects.create(
            customer_name='Webhook User',
            customer_email='webhook@example.com',
            customer_phone='08012345678',
            delivery_address='12 Marina Road',
            delivery_city='Lagos',
            subtotal=Decimal('2500.00'),
            delivery_fee=Decimal('3.00'),
            total=Decimal('2503.00'),
            payment_intent_id=self.reference,
            payment_gateway=self.gateway,
        )

        OrderItem.objects.create(
            order=self.order,
            menu_item=self.menu_item,
            name=self.menu_item.name,
            quantity=1,
            unit_price=Decimal('2500.00'),
            line_total=Decimal('2500.00'),
        )

        self.payment = Payment.objects.create(
            order=self.order,
            payment_intent_id=self.reference,
            gateway=self.gateway,
            amount=Decimal('2503.00'),
            currency='ngn',
        )


@override_settings(**WEBHOOK_SETTINGS)
class StripeWebhookTestCase(WebhookTestMixin, TestCase):
    """Test cases for Stripe webhook processing."""

    def setUp(self):
        super().setUp()
        self.webhook_url = reverse('payments:stripe_webhook')
        self.webhook_secret = 'whsec_test_secret'

    def _create_webhook_signature(self, payload, secret=None):
        """Create a valid Stripe webhook signature."""
        if secret is None:
            secret = self.webhook_secret

        timestamp = str(int(timezone.now().timestamp()))
        signed_payload = f"{timestamp}.{payload}"

        signature = hmac.new(
            secret.encode('utf-8'),
            signed_payload.encode('utf-8'),
            hashlib.sha256
        ).hexdigest()

        return f"t={timestamp},v1={signature}"

    def _create_payment_intent_event(self, event_type, payment_intent_id, status='succeeded', event_id=None):
        """Create a Stripe payment intent event payload."""
        return {
            "id": event_id or f"evt_test_{event_type}_{payment_intent_id}",
            "object": "event",
            "api_version": "2024-06-20",
            "created": int(timezone.now().timestamp()),
            "data": {
                "object": {
                    "id": payment_intent_id,
                    "object": "payment_intent",
                    "amount": 250300,
                    "amount_received": 250300 if status == 'succeeded' else 0,
                    "currency": "ngn",
                    "status": status,
                    "metadata": {
                        "orderNumber": self.order.order_number
                    }
                }
            },
            "livemode": False,
            "type": event_type
        }

    def _post(self, event_data, signature=None):
        payload = json.dumps(event_data)
        return self.client.post(
            self.webhook_url,
            data=payload,
            content_type='application/json',
            HTTP_STRIPE_SIGNATURE=signature if signature is not None else self._create_webhook_signature(payload)
        )

    def test_payment_intent_succeeded_webhook(self):
        """Successful intent marks payment and order paid and notifies once."""
        event_data = self._create_payment_intent_event('payment_intent.succeeded', self.reference)

        with self.captureOnCommitCallbacks(execute=True):
            response = self._post(event_data)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b'Webhook processed successfully')

        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.STATUS_PAID)
        self.assertIsNotNone(self.payment.processed_at)

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PAID)
        self.assertEqual(self.order.status, Order.STATUS_PENDING)
        self.assertIsNotNone(self.order.paid_at)

        webhook_event = WebhookEvent.objects.get(event_key=f"stripe:{event_data['id']}")
        self.assertEqual(webhook_event.event_type, 'payment_intent.succeeded')
        self.assertTrue(webhook_event.processed)

        self.assertEqual(len(mail.outbox), 2)
        recipients = sorted(m.to[0] for m in mail.outbox)
        self.assertEqual(recipients, ['kitchen@example.com', 'webhook@example.com'])

    def test_payment_intent_payment_failed_webhook(self):
        """Failed intent marks payment and order failed."""
        event_data = self._create_payment_intent_event(
            'payment_intent.payment_failed',
            self.reference,
            status='requires_payment_method'
        )

        response = self._post(event_data)

        self.assertEqual(response.status_code, 200)
        self.payment.refresh_from_db()
        self.order.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.STATUS_FAILED)
        self.assertEqual(self.order.payment_status, Order.PAYMENT_FAILED)

    def test_invalid_webhook_signature(self):
        """A bad signature is rejected before any state changes."""
        event_data = self._create_payment_intent_event('payment_intent.succeeded', self.reference)
        payload = json.dumps(event_data)
        signature = self._create_webhook_signature(payload, secret='whsec_wrong')

        response = self._post(event_data, signature=signature)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b'Invalid signature')
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.STATUS_PENDING)
        self.assertFalse(WebhookEvent.objects.exists())

    def test_missing_signature_header(self):
        event_data = self._create_payment_intent_event('payment_intent.succeeded', self.reference)

        response = self._post(event_data, signature='')

        self.assertEqual(response.status_code, 400)

    def test_duplicate_webhook_event(self):
        """The same event delivered twice has a single effect."""
        event_data = self._create_payment_intent_event('payment_intent.succeeded', self.reference)

        with self.captureOnCommitCallbacks(execute=True):
            first = self._post(event_data)
        with self.captureOnCommitCallbacks(execute=True):
            second = self._post(event_data)

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(WebhookEvent.objects.count(), 1)
        self.assertEqual(len(mail.outbox), 2)
        record = WebhookEvent.objects.get()
        self.assertEqual(
            list(record.deliveries.values_list('result', flat=True)),
            ['paid', 'duplicate'],
        )

    def test_webhook_with_nonexistent_payment_intent(self):
        """Unknown references are acknowledged so the provider stops retrying."""
        event_data = self._create_payment_intent_event('payment_intent.succeeded', 'pi_nonexistent')

        response = self._post(event_data)

        self.assertEqual(response.status_code, 200)
        self.assertFalse(WebhookEvent.objects.exists())
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_UNPAID)

    def test_unsupported_webhook_event_type(self):
        event_data = self._create_payment_intent_event('customer.created', self.reference)

        response = self._post(event_data)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b'Event ignored')
        self.assertFalse(WebhookEvent.objects.exists())

    def test_malformed_webhook_payload(self):
        payload = 'invalid json'

        response = self.client.post(
            self.webhook_url,
            data=payload,
            content_type='application/json',
            HTTP_STRIPE_SIGNATURE=self._create_webhook_signature(payload)
        )

        self.assertEqual(response.status_code, 400)

    @override_settings(STRIPE_WEBHOOK_SECRET='')
    def test_unconfigured_secret_returns_500(self):
        event_data = self._create_payment_intent_event('payment_intent.succeeded', self.reference)

        response = self._post(event_data)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.content, b'Webhook not configured')

    def test_signed_payload_with_non_object_data_is_invalid(self):
        event_data = self._create_payment_intent_event('payment_intent.succeeded', self.reference)
        event_data['data'] = 'oops'

        response = self._post(event_data)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b'Invalid payload')
        self.assertFalse(WebhookEvent.objects.exists())

    def test_processing_error_returns_500_for_retry(self):
        event_data = self._create_payment_intent_event('payment_intent.succeeded', self.reference)

        with patch('payments.reconciliation._transition', side_effect=RuntimeError('db went away')):
            response = self._post(event_data)

        self.assertEqual(response.status_code, 500)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.STATUS_PENDING)
        record = WebhookEvent.objects.get(event_key=f"stripe:{event_data['id']}")
        self.assertFalse(record.processed)
        self.assertEqual(record.processing_attempts, 1)
        self.assertIn('db went away', record.last_error)
        self.assertEqual(record.deliveries.get().result, 'error')

        # The provider's retry succeeds
        retry = self._post(event_data)
        self.assertEqual(retry.status_code, 200)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.STATUS_PAID)
        self.assertEqual(
            list(record.deliveries.values_list('result', flat=True)),
            ['error', 'paid'],
        )

    def test_get_not_allowed(self):
        response = self.client.get(self.webhook_url)

        self.assertEqual(response.status_code, 405)


@override_settings(**WEBHOOK_SETTINGS)
class PaystackWebhookTestCase(WebhookTestMixin, TestCase):
    """Test cases for Paystack webhook processing."""

    reference = 'TB-12345678-AB12-3f9c0a1b2c3d'
    gateway = Payment.GATEWAY_PAYSTACK

    def setUp(self):
        super().setUp()
        self.webhook_url = reverse('payments:paystack_webhook')

    def _charge_event(self, event='charge.success', reference=None, status='success'):
        return {
            "event": event,
            "data": {
                "id": 302961,
                "domain": "test",
                "status": status,
                "reference": reference or self.reference,
                "amount": 250300,
                "currency": "NGN",
                "paid_at": "2026-03-14T12:30:00.000Z",
                "customer": {"email": "webhook@example.com"},
            },
        }

    def _post(self, event_data, secret='sk_test_paystack'):
        body = json.dumps(event_data).encode('utf-8')
        return self.client.post(
            self.webhook_url,
            data=body,
            content_type='application/json',
            HTTP_X_PAYSTACK_SIGNATURE=signature_for(body, secret)
        )

    def test_charge_success_webhook(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self._post(self._charge_event())

        self.assertEqual(response.status_code, 200)
        self.payment.refresh_from_db()
        self.order.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.STATUS_PAID)
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PAID)
        self.assertEqual(self.order.paid_at.year, 2026)
        # Paystack sends no event id; dedup falls back to reference:outcome
        self.assertTrue(WebhookEvent.objects.filter(event_key=f'{self.reference}:SUCCEEDED').exists())
        self.assertEqual(len(mail.outbox), 2)

    def test_redelivery_is_deduplicated(self):
        with self.captureOnCommitCallbacks(execute=True):
            self._post(self._charge_event())
        with self.captureOnCommitCallbacks(execute=True):
            response = self._post(self._charge_event())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(WebhookEvent.objects.count(), 1)
        self.assertEqual(len(mail.outbox), 2)

    def test_redelivery_payload_is_kept_for_audit(self):
        """Paystack repeats share the reference:outcome key; each body is still stored."""
        first = self._charge_event()
        repeat = self._charge_event()
        repeat['data']['id'] = 302962

        with self.captureOnCommitCallbacks(execute=True):
            self._post(first)
        with self.captureOnCommitCallbacks(execute=True):
            response = self._post(repeat)

        self.assertEqual(response.status_code, 200)
        record = WebhookEvent.objects.get(event_key=f'{self.reference}:SUCCEEDED')
        deliveries = list(record.deliveries.all())
        self.assertEqual([d.result for d in deliveries], ['paid', 'duplicate'])
        self.assertEqual([d.payload['data']['id'] for d in deliveries], [302961, 302962])
        self.assertEqual(len(mail.outbox), 2)

    def test_charge_failed_webhook(self):
        response = self._post(self._charge_event(event='charge.failed', status='failed'))

        self.assertEqual(response.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_FAILED)

    def test_invalid_signature(self):
        response = self._post(self._charge_event(), secret='sk_wrong')

        self.assertEqual(response.status_code, 400)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.STATUS_PENDING)

    def test_other_events_are_ignored(self):
        response = self._post({"event": "transfer.success", "data": {"reference": "trf_1"}})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b'Event ignored')

    def test_missing_reference_is_invalid_payload(self):
        event = self._charge_event()
        event['data'].pop('reference')

        response = self._post(event)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b'Invalid payload')

    def test_signed_payload_with_non_object_data_is_invalid(self):
        response = self._post({"event": "charge.success", "data": "oops"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b'Invalid payload')
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.STATUS_PENDING)
