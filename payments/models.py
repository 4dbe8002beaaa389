from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class Payment(models.Model):
    """
    One payment attempt against an order, keyed by the gateway reference.

    An order may have several attempts (e.g. a failed card followed by a new
    intent). PAID and FAILED are terminal: reconciliation never moves a
    payment out of them.
    """

    STATUS_PENDING = 'PENDING'
    STATUS_PAID = 'PAID'
    STATUS_FAILED = 'FAILED'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PAID, 'Paid'),
        (STATUS_FAILED, 'Failed'),
    ]

    GATEWAY_STRIPE = 'STRIPE'
    GATEWAY_PAYSTACK = 'PAYSTACK'

    GATEWAY_CHOICES = [
        (GATEWAY_STRIPE, 'Stripe'),
        (GATEWAY_PAYSTACK, 'Paystack'),
    ]

    payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Gateway reference (Stripe PaymentIntent id or Paystack reference)"
    )

    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.PROTECT,
        related_name='payments',
    )

    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True,
    )

    gateway = models.CharField(max_length=20, choices=GATEWAY_CHOICES)

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Amount requested from the gateway (major units)"
    )

    currency = models.CharField(
        max_length=3,
        default='ngn',
        help_text="ISO currency code"
    )

    gateway_response = models.JSONField(
        default=dict,
        blank=True,
        help_text="Raw payload of the last gateway response or event applied"
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment reached a terminal status"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['order', '-created_at'], name='payments_pa_order_i_2d6b0e_idx'),
            models.Index(fields=['gateway', 'status'], name='payments_pa_gateway_7c91a4_idx'),
        ]

    def __str__(self):
        return f"{self.gateway} {self.payment_intent_id} - {self.status} - {self.amount} {self.currency.upper()}"

    @property
    def is_terminal(self) -> bool:
        return self.status in (self.STATUS_PAID, self.STATUS_FAILED)


class WebhookEvent(models.Model):
    """
    Dedup record for inbound gateway events.

    ``event_key`` is the provider event id when one is sent, otherwise
    ``{reference}:{outcome}``. A second delivery with the same key finds the
    existing row and skips side effects.
    """

    event_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Provider event id, or reference:outcome when none is sent"
    )

    gateway = models.CharField(max_length=20, choices=Payment.GATEWAY_CHOICES)

    event_type = models.CharField(
        max_length=100,
        blank=True,
        help_text="Provider event type (e.g. payment_intent.succeeded, charge.success)"
    )

    provider_reference = models.CharField(max_length=255, blank=True, db_index=True)

    outcome = models.CharField(max_length=10, blank=True)

    # Processing status
    processed = models.BooleanField(
        default=False,
        help_text="Whether this event has been successfully applied"
    )

    processing_attempts = models.PositiveIntegerField(
        default=0,
        help_text="Number of processing attempts"
    )

    event_data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Full provider event payload"
    )

    result = models.CharField(
        max_length=40,
        blank=True,
        help_text="What reconciliation did with the event"
    )

    last_error = models.TextField(
        blank=True,
        help_text="Last processing error if any"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When event was successfully processed"
    )

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['processed'], name='payments_we_process_0a3f5c_idx'),
            models.Index(fields=['-created_at'], name='payments_we_created_9e2b71_idx'),
        ]

    def __str__(self):
        status = "done" if self.processed else "pending"
        return f"[{status}] {self.gateway} {self.event_type or self.outcome} - {self.event_key}"

    def mark_processed(self, result: str = ""):
        """Mark event as successfully processed."""
        self.processed = True
        self.processed_at = timezone.now()
        self.result = result or self.result
        self.save(update_fields=['processed', 'processed_at', 'result'])

    def increment_attempts(self, error_message=None):
        """Increment processing attempts and optionally log error."""
        self.processing_attempts += 1
        if error_message:
            self.last_error = error_message
        self.save(update_fields=['processing_attempts', 'last_error'])


class WebhookDelivery(models.Model):
    """
    Audit row for one inbound delivery of a webhook event.

    Every delivery that reaches a known payment is appended here, including
    redeliveries that the dedup record suppresses, so the raw payload of each
    attempt is kept.
    """

    webhook_event = models.ForeignKey(
        WebhookEvent,
        on_delete=models.CASCADE,
        related_name='deliveries',
    )

    payload = models.JSONField(
        default=dict,
        blank=True,
        help_text="Raw provider payload as received"
    )

    result = models.CharField(
        max_length=40,
        blank=True,
        help_text="What reconciliation did with this delivery"
    )

    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['received_at', 'id']
        verbose_name_plural = 'webhook deliveries'

    def __str__(self):
        return f"{self.webhook_event.event_key} @ {self.received_at:%Y-%m-%d %H:%M:%S} - {self.result}"
