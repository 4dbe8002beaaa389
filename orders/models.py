from __future__ import annotations

import logging
import secrets
import string
import time
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator, MinLengthValidator
from django.db import models, transaction
from django.utils import timezone
from django.utils.html import strip_tags

from core.exceptions import StateConflict, ValidationError
from core.money import q2

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase


def _order_number_suffix(length: int = 4) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def make_order_number(prefix: str = "TB") -> str:
    """``TB-{last 8 digits of epoch ms}-{4 base36 chars}``."""
    stamp = str(int(time.time() * 1000))[-8:]
    return f"{prefix}-{stamp}-{_order_number_suffix()}"


def make_temp_order_number() -> str:
    return make_order_number(prefix="TB-TEMP")


class Order(models.Model):
    """
    A placed catering order with its pricing pinned at creation.

    Two orthogonal state machines live here:
    - ``status`` (fulfillment) is operator-driven via ``transition_to``;
    - ``payment_status`` is written only by payment reconciliation.
    """
    STATUS_PENDING = "PENDING"
    STATUS_CONFIRMED = "CONFIRMED"
    STATUS_PREPARING = "PREPARING"
    STATUS_READY = "READY"
    STATUS_OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    STATUS_DELIVERED = "DELIVERED"
    STATUS_CANCELLED = "CANCELLED"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_PREPARING, "Preparing"),
        (STATUS_READY, "Ready"),
        (STATUS_OUT_FOR_DELIVERY, "Out for Delivery"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # Forward path plus cancellation from any non-terminal state
    VALID_STATUS_TRANSITIONS = {
        STATUS_PENDING: [STATUS_CONFIRMED, STATUS_CANCELLED],
        STATUS_CONFIRMED: [STATUS_PREPARING, STATUS_CANCELLED],
        STATUS_PREPARING: [STATUS_READY, STATUS_CANCELLED],
        STATUS_READY: [STATUS_OUT_FOR_DELIVERY, STATUS_CANCELLED],
        STATUS_OUT_FOR_DELIVERY: [STATUS_DELIVERED, STATUS_CANCELLED],
        STATUS_DELIVERED: [],
        STATUS_CANCELLED: [],
    }

    PAYMENT_UNPAID = "UNPAID"
    PAYMENT_PAID = "PAID"
    PAYMENT_FAILED = "FAILED"

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_UNPAID, "Unpaid"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_FAILED, "Failed"),
    ]

    DELIVERY_STANDARD = "STANDARD"
    DELIVERY_EXPRESS = "EXPRESS"
    DELIVERY_CHOICES = [
        (DELIVERY_STANDARD, "Standard"),
        (DELIVERY_EXPRESS, "Express"),
    ]

    order_number = models.CharField(
        max_length=32,
        unique=True,
        db_index=True,
        help_text="Customer-visible order number (auto-generated)"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="catering_orders",
        help_text="Ordering customer (null for guest checkout)"
    )

    # Customer / delivery details
    customer_name = models.CharField(max_length=100)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=20, validators=[MinLengthValidator(10)])
    delivery_address = models.CharField(max_length=255)
    delivery_city = models.CharField(max_length=100)
    special_instructions = models.TextField(blank=True, max_length=1000)
    delivery_method = models.CharField(
        max_length=16,
        choices=DELIVERY_CHOICES,
        default=DELIVERY_STANDARD,
    )

    # Fulfillment
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True,
    )
    whatsapp_sent = models.BooleanField(default=False)

    # Payment
    payment_status = models.CharField(
        max_length=10,
        choices=PAYMENT_STATUS_CHOICES,
        default=PAYMENT_UNPAID,
        db_index=True,
    )
    payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Gateway reference of the latest payment attempt"
    )
    payment_gateway = models.CharField(max_length=20, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    confirmation_sent_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set once when the payment confirmation notification is queued"
    )

    # Pricing pinned at creation
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    delivery_fee = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    vat_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    vat_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])

    # Fulfillment timestamps
    confirmed_at = models.DateTimeField(null=True, blank=True)
    started_preparing_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    out_for_delivery_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='orders_orde_status_3f0a9d_idx'),
            models.Index(fields=['payment_status', 'created_at'], name='orders_orde_payment_c41e7b_idx'),
        ]

    _STATUS_TIMESTAMPS = {
        STATUS_CONFIRMED: 'confirmed_at',
        STATUS_PREPARING: 'started_preparing_at',
        STATUS_READY: 'ready_at',
        STATUS_OUT_FOR_DELIVERY: 'out_for_delivery_at',
        STATUS_DELIVERED: 'delivered_at',
        STATUS_CANCELLED: 'cancelled_at',
    }

    def __str__(self):
        return f"{self.order_number} ({self.status}/{self.payment_status})"

    def clean(self):
        super().clean()
        for f in ('customer_name', 'delivery_address', 'delivery_city', 'special_instructions'):
            value = getattr(self, f)
            if value:
                setattr(self, f, strip_tags(value).strip())

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.order_number = self._unique_order_number()
        super().save(*args, **kwargs)

    @classmethod
    def _unique_order_number(cls) -> str:
        for _ in range(10):
            candidate = make_order_number()
            if not cls.objects.filter(order_number=candidate).exists():
                return candidate
        raise RuntimeError("Could not allocate a unique order number")

    @property
    def is_paid(self) -> bool:
        return self.payment_status == self.PAYMENT_PAID

    @property
    def is_terminal(self) -> bool:
        return not self.VALID_STATUS_TRANSITIONS.get(self.status)

    @property
    def estimated_delivery(self) -> str:
        return "30-45 minutes" if self.delivery_method == self.DELIVERY_EXPRESS else "45-60 minutes"

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in self.VALID_STATUS_TRANSITIONS.get(self.status, [])

    def transition_to(self, new_status: str, by_user=None, note: str = "", whatsapp_sent=None):
        """
        Apply an operator status change.

        The row is locked for the read-check-write so concurrent updates
        serialize. Writes an ``OrderStatusHistory`` row and emits
        ``order_status_changed``; receivers must not assume the transaction
        has committed.
        """
        from .signals import order_status_changed  # to avoid circulars

        new_status = (new_status or "").strip().upper()
        if new_status not in dict(self.STATUS_CHOICES):
            raise ValidationError(detail=f"Unknown order status: {new_status or '(empty)'}")

        with transaction.atomic():
            locked = Order.objects.select_for_update().get(pk=self.pk)
            old_status = locked.status
            if new_status not in self.VALID_STATUS_TRANSITIONS.get(old_status, []):
                raise StateConflict(
                    detail=f"Cannot change order {locked.order_number} from {old_status} to {new_status}",
                    current_status=old_status,
                    requested_status=new_status,
                )

            now = timezone.now()
            locked.status = new_status
            update_fields = ['status', 'updated_at']
            ts_field = self._STATUS_TIMESTAMPS.get(new_status)
            if ts_field and not getattr(locked, ts_field):
                setattr(locked, ts_field, now)
                update_fields.append(ts_field)
            if whatsapp_sent is not None:
                locked.whatsapp_sent = bool(whatsapp_sent)
                update_fields.append('whatsapp_sent')
            locked.save(update_fields=update_fields)

            OrderStatusHistory.objects.create(
                order=locked,
                previous_status=old_status,
                new_status=new_status,
                changed_by=by_user if getattr(by_user, 'pk', None) else None,
                note=note or "",
            )

            for f in update_fields:
                setattr(self, f, getattr(locked, f))
            logger.info("Order %s status %s -> %s", self.order_number, old_status, new_status)
            order_status_changed.send(sender=Order, order=self, old=old_status, new=new_status, by_user=by_user)
        return self

    def breakdown_dict(self) -> dict:
        return {
            "subtotal": f"{q2(self.subtotal):.2f}",
            "deliveryFee": f"{q2(self.delivery_fee):.2f}",
            "vatRate": f"{q2(self.vat_rate):.2f}",
            "vatAmount": f"{q2(self.vat_amount):.2f}",
            "total": f"{q2(self.total):.2f}",
        }


class OrderItem(models.Model):
    """One cart line as ordered; prices are the catalog prices at order time."""
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )
    menu_item = models.ForeignKey(
        'menu.MenuItem',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="order_items",
    )
    name = models.CharField(max_length=200)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    variant = models.CharField(max_length=100, blank=True)
    variant_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    measurement = models.CharField(max_length=50, blank=True)
    measurement_type = models.CharField(max_length=50, blank=True)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1), MaxValueValidator(999)])
    extras = models.JSONField(
        default=list,
        blank=True,
        help_text="Selected extras: [{id, name, price, quantity, groupId, groupName}]"
    )
    line_total = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity}x {self.name} - {self.line_total}"


class OrderStatusHistory(models.Model):
    """
    Audit trail of fulfillment status changes.
    """
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    previous_status = models.CharField(
        max_length=20,
        choices=Order.STATUS_CHOICES,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=20, choices=Order.STATUS_CHOICES)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="order_status_changes",
    )
    note = models.TextField(blank=True, max_length=500)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name_plural = "Order status history"

    def __str__(self):
        return f"{self.order.order_number}: {self.previous_status} -> {self.new_status}"
