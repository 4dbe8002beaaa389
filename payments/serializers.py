from rest_framework import serializers

from .models import Payment


class PaymentIntentCreateSerializer(serializers.Serializer):
    orderNumber = serializers.CharField(max_length=32)
    gateway = serializers.ChoiceField(choices=["stripe", "paystack", "STRIPE", "PAYSTACK"])
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    currency = serializers.CharField(max_length=3, required=False, allow_blank=True)
    customerEmail = serializers.EmailField(required=False, allow_blank=True)
    metadata = serializers.DictField(required=False, default=dict)


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id", "payment_intent_id", "status", "gateway", "amount", "currency",
            "processed_at", "created_at",
        ]
        read_only_fields = fields
