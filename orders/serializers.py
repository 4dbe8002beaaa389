from rest_framework import serializers

from core.money import format_amount
from .models import Order, OrderItem


class CheckoutExtraSerializer(serializers.Serializer):
    """
    A selected extra as sent by the storefront. ``price`` and ``name`` are
    informational; the catalog price is what gets charged.
    """
    id = serializers.IntegerField(min_value=1)
    name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    quantity = serializers.IntegerField(required=False, default=1, max_value=99)
    groupId = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    groupName = serializers.CharField(max_length=100, required=False, allow_blank=True)


class CheckoutItemSerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)
    name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    quantity = serializers.IntegerField(max_value=999)
    variant = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    variantPrice = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    measurement = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    measurementType = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    extras = CheckoutExtraSerializer(many=True, required=False, default=list)


class CheckoutSerializer(serializers.Serializer):
    """
    Checkout payload shared by prepare and order creation.

    Client-declared amounts are optional and only used for cross-checking.
    """
    customerName = serializers.CharField(max_length=100)
    customerEmail = serializers.EmailField()
    customerPhone = serializers.CharField(min_length=10, max_length=20)
    deliveryAddress = serializers.CharField(max_length=255)
    deliveryCity = serializers.CharField(max_length=100)
    specialInstructions = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)
    deliveryMethod = serializers.CharField(max_length=16)
    items = CheckoutItemSerializer(many=True, allow_empty=False)

    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    deliveryFee = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    vatAmount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)


class OrderConfirmSerializer(serializers.Serializer):
    orderNumber = serializers.CharField(max_length=32, required=False)
    reference = serializers.CharField(max_length=255, required=False)

    def validate(self, attrs):
        if not attrs.get("orderNumber") and not attrs.get("reference"):
            raise serializers.ValidationError("orderNumber or reference is required.")
        return attrs


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)
    whatsappSent = serializers.BooleanField(required=False, allow_null=True, default=None)
    note = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class OrderItemSnapshotSerializer(serializers.ModelSerializer):
    unitPrice = serializers.SerializerMethodField()
    variantPrice = serializers.SerializerMethodField()
    measurementType = serializers.CharField(source="measurement_type")
    lineTotal = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = [
            "name", "unitPrice", "variant", "variantPrice", "measurement",
            "measurementType", "quantity", "extras", "lineTotal",
        ]

    def get_unitPrice(self, obj):
        return format_amount(obj.unit_price)

    def get_variantPrice(self, obj):
        return format_amount(obj.variant_price) if obj.variant_price is not None else None

    def get_lineTotal(self, obj):
        return format_amount(obj.line_total)


class OrderSnapshotSerializer(serializers.ModelSerializer):
    """Public view of an order: safe for tracking pages and notifications."""
    orderNumber = serializers.CharField(source="order_number")
    paymentStatus = serializers.CharField(source="payment_status")
    deliveryMethod = serializers.CharField(source="delivery_method")
    estimatedDelivery = serializers.CharField(source="estimated_delivery")
    customerName = serializers.CharField(source="customer_name")
    items = OrderItemSnapshotSerializer(many=True, read_only=True)
    breakdown = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")
    paidAt = serializers.DateTimeField(source="paid_at", allow_null=True)

    class Meta:
        model = Order
        fields = [
            "orderNumber", "status", "paymentStatus", "deliveryMethod",
            "estimatedDelivery", "customerName", "items", "breakdown",
            "createdAt", "updatedAt", "paidAt",
        ]
        read_only_fields = fields

    def get_breakdown(self, obj):
        return obj.breakdown_dict()


class AdminOrderSerializer(OrderSnapshotSerializer):
    customerEmail = serializers.CharField(source="customer_email")
    customerPhone = serializers.CharField(source="customer_phone")
    deliveryAddress = serializers.CharField(source="delivery_address")
    deliveryCity = serializers.CharField(source="delivery_city")
    whatsappSent = serializers.BooleanField(source="whatsapp_sent")
    paymentIntentId = serializers.CharField(source="payment_intent_id", allow_null=True)

    class Meta(OrderSnapshotSerializer.Meta):
        fields = OrderSnapshotSerializer.Meta.fields + [
            "customerEmail", "customerPhone", "deliveryAddress", "deliveryCity",
            "whatsappSent", "paymentIntentId",
        ]
        read_only_fields = fields


class DeliveryFeeSettingsSerializer(serializers.Serializer):
    standard = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    express = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class VatSettingsSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()
    rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100)
