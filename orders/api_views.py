import logging

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.authentication import SessionAuthentication
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response

from core.exceptions import NotFound
from core.money import format_amount
from .models import Order
from .pricing import load_pricing_config, save_delivery_fees, save_vat
from .serializers import (
    AdminOrderSerializer,
    CheckoutSerializer,
    DeliveryFeeSettingsSerializer,
    OrderConfirmSerializer,
    OrderSnapshotSerializer,
    OrderStatusUpdateSerializer,
    VatSettingsSerializer,
)
from .services.checkout import checkout_preview, create_order

logger = logging.getLogger(__name__)


class CsrfExemptSessionAuthentication(SessionAuthentication):
    """SessionAuthentication that bypasses CSRF validation for storefront endpoints."""

    def enforce_csrf(self, request):
        return  # Skip CSRF validation


def _order_or_404(order_number: str) -> Order:
    try:
        return Order.objects.prefetch_related("items").get(order_number=order_number)
    except Order.DoesNotExist:
        raise NotFound(detail=f"Order {order_number} not found.")


# ---------------------------------------------------------------------------
# Storefront
# ---------------------------------------------------------------------------

@extend_schema(request=CheckoutSerializer)
@api_view(["POST"])
@authentication_classes([CsrfExemptSessionAuthentication])
@permission_classes([AllowAny])
def prepare_checkout_view(request):
    """Price a cart without persisting anything."""
    serializer = CheckoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return Response(checkout_preview(serializer.validated_data))


@extend_schema(request=CheckoutSerializer, responses=OrderSnapshotSerializer)
@api_view(["POST"])
@authentication_classes([CsrfExemptSessionAuthentication])
@permission_classes([AllowAny])
def create_order_view(request):
    serializer = CheckoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    order = create_order(serializer.validated_data, user=request.user)
    order = Order.objects.prefetch_related("items").get(pk=order.pk)
    return Response(OrderSnapshotSerializer(order).data, status=status.HTTP_201_CREATED)


@extend_schema(request=OrderConfirmSerializer, responses=OrderSnapshotSerializer)
@api_view(["POST"])
@authentication_classes([CsrfExemptSessionAuthentication])
@permission_classes([AllowAny])
def confirm_order_view(request):
    """
    Ask the gateway for the latest outcome of an order's payment and
    reconcile it. Safe to call repeatedly (e.g. from the payment return page).
    """
    from payments.services import verify_and_reconcile

    serializer = OrderConfirmSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    if data.get("orderNumber"):
        order = _order_or_404(data["orderNumber"])
    else:
        order = Order.objects.filter(payment_intent_id=data["reference"]).first()
        if order is None:
            raise NotFound(detail="No order found for that payment reference.")

    verify_and_reconcile(order, reference=data.get("reference"))
    order = Order.objects.prefetch_related("items").get(pk=order.pk)
    return Response(OrderSnapshotSerializer(order).data)


@extend_schema(responses=OrderSnapshotSerializer)
@api_view(["GET"])
@permission_classes([AllowAny])
def track_order_view(request, order_number):
    order = _order_or_404(order_number)
    return Response(OrderSnapshotSerializer(order).data)


# ---------------------------------------------------------------------------
# Back office
# ---------------------------------------------------------------------------

@extend_schema(request=OrderStatusUpdateSerializer, responses=AdminOrderSerializer)
@api_view(["PUT"])
@permission_classes([IsAdminUser])
def update_order_status_view(request, order_number):
    serializer = OrderStatusUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    order = get_object_or_404(Order, order_number=order_number)
    order.transition_to(
        data["status"],
        by_user=request.user,
        note=data.get("note", ""),
        whatsapp_sent=data.get("whatsappSent"),
    )
    order = Order.objects.prefetch_related("items").get(pk=order.pk)
    return Response(AdminOrderSerializer(order).data)


def _delivery_fee_payload(config):
    return {
        "standard": format_amount(config.standard_fee),
        "express": format_amount(config.express_fee),
    }


def _vat_payload(config):
    return {
        "enabled": config.vat.enabled,
        "rate": format_amount(config.vat.rate),
    }


@api_view(["GET"])
@permission_classes([AllowAny])
def delivery_fee_settings_view(request):
    return Response(_delivery_fee_payload(load_pricing_config()))


@api_view(["GET"])
@permission_classes([AllowAny])
def vat_settings_view(request):
    return Response(_vat_payload(load_pricing_config()))


@extend_schema(request=DeliveryFeeSettingsSerializer)
@api_view(["GET", "PUT"])
@permission_classes([IsAdminUser])
def admin_delivery_fee_settings_view(request):
    if request.method == "GET":
        return Response(_delivery_fee_payload(load_pricing_config()))
    serializer = DeliveryFeeSettingsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    config = save_delivery_fees(**serializer.validated_data)
    logger.info("Delivery fees changed by %s", request.user)
    return Response(_delivery_fee_payload(config))


@extend_schema(request=VatSettingsSerializer)
@api_view(["GET", "PUT"])
@permission_classes([IsAdminUser])
def admin_vat_settings_view(request):
    if request.method == "GET":
        return Response(_vat_payload(load_pricing_config()))
    serializer = VatSettingsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    config = save_vat(**serializer.validated_data)
    logger.info("VAT settings changed by %s", request.user)
    return Response(_vat_payload(config))
