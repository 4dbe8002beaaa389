from __future__ import annotations

import logging

from django.http import HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.exceptions import GatewayError, NotFound, SignatureError, ValidationError
from core.money import format_amount, from_minor
from orders.api_views import CsrfExemptSessionAuthentication
from orders.models import Order
from .gateways import Gateway
from .serializers import PaymentIntentCreateSerializer
from .services import handle_webhook, initiate

logger = logging.getLogger(__name__)


@extend_schema(request=PaymentIntentCreateSerializer)
@api_view(['POST'])
@authentication_classes([CsrfExemptSessionAuthentication])
@permission_classes([AllowAny])
def create_payment_intent(request):
    """
    Start a payment for an order on the chosen gateway.

    Expected payload:
    {
        "orderNumber": "TB-12345678-AB12",
        "gateway": "stripe" | "paystack",
        "amount": "29.88",              # Optional: must equal the order total
        "currency": "ngn",              # Optional: defaults to PAYMENT_CURRENCY
        "customerEmail": "a@b.com",     # Optional: defaults to the order email
        "metadata": {...}               # Optional
    }
    """
    serializer = PaymentIntentCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    order = Order.objects.filter(order_number=data['orderNumber']).first()
    if order is None:
        raise NotFound(detail=f"Order {data['orderNumber']} not found.")

    handle = initiate(
        order,
        data['gateway'],
        amount=data.get('amount'),
        currency=data.get('currency') or None,
        customer_email=data.get('customerEmail') or None,
        metadata=data.get('metadata'),
        user=request.user,
    )
    return Response({
        'gateway': handle.gateway.value.lower(),
        'providerReference': handle.provider_reference,
        'clientHandoff': handle.client_handoff,
        'amount': format_amount(from_minor(handle.amount_minor)),
        'currency': handle.currency,
    }, status=status.HTTP_201_CREATED)


def _process_webhook(request, gateway: Gateway, signature: str) -> HttpResponse:
    """
    Shared webhook flow: 400 for a bad signature or malformed body, 200 once
    the event is applied or deliberately ignored, 500 otherwise so the
    provider retries.
    """
    try:
        result = handle_webhook(gateway, request.body, signature)
    except SignatureError:
        logger.warning("%s webhook signature verification failed", gateway.value.title())
        return HttpResponse('Invalid signature', status=400, content_type='text/plain')
    except ValidationError as e:
        logger.warning("%s webhook rejected: %s", gateway.value.title(), e.message)
        return HttpResponse('Invalid payload', status=400, content_type='text/plain')
    except GatewayError as e:
        logger.error("%s webhook cannot be verified: %s", gateway.value.title(), e.message)
        return HttpResponse('Webhook not configured', status=500, content_type='text/plain')
    except Exception:
        logger.exception("Unexpected error processing %s webhook", gateway.value.title())
        return HttpResponse('Internal server error', status=500, content_type='text/plain')

    if result is None:
        return HttpResponse('Event ignored', status=200, content_type='text/plain')
    logger.info("%s webhook processed: %s", gateway.value.title(), result.result)
    return HttpResponse('Webhook processed successfully', status=200, content_type='text/plain')


@csrf_exempt
@require_http_methods(["POST"])
def stripe_webhook(request):
    """
    Stripe webhooks: payment_intent.succeeded and payment_intent.payment_failed
    are reconciled; other event types are acknowledged and ignored.
    """
    return _process_webhook(request, Gateway.STRIPE, request.META.get('HTTP_STRIPE_SIGNATURE', ''))


@csrf_exempt
@require_http_methods(["POST"])
def paystack_webhook(request):
    """
    Paystack webhooks: charge.success and charge.failed are reconciled;
    other events are acknowledged and ignored.
    """
    return _process_webhook(request, Gateway.PAYSTACK, request.META.get('HTTP_X_PAYSTACK_SIGNATURE', ''))
