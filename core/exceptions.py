"""
Settlement error taxonomy and the DRF exception handler that renders it.

Every API error leaves the service as ``{"code": ..., "error": ...}`` plus
optional detail keys, so clients can branch on ``code`` (for example
``amount_too_small``) without parsing messages.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class SettlementError(drf_exceptions.APIException):
    """Base class for domain errors raised by the settlement engine."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "settlement_error"
    default_detail = "The request could not be processed."

    def __init__(self, detail: Optional[str] = None, code: Optional[str] = None, **extra: Any):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)
        self.code = code or self.default_code
        self.extra: Dict[str, Any] = extra

    @property
    def message(self) -> str:
        return str(self.detail)


class ValidationError(SettlementError):
    default_code = "validation_error"
    default_detail = "Invalid request."


class InvalidQuantity(ValidationError):
    default_code = "invalid_quantity"
    default_detail = "Quantity must be a whole number of at least 1."


class UnknownDeliveryMethod(ValidationError):
    default_code = "unknown_delivery_method"
    default_detail = "Delivery method must be STANDARD or EXPRESS."


class ExtrasSelectionError(ValidationError):
    """Extra-group cardinality violation; carries the offending group id."""
    default_code = "invalid_extras_selection"

    def __init__(self, group_id, reason: str):
        super().__init__(f"Extra group {group_id}: {reason}", group_id=group_id, reason=reason)
        self.group_id = group_id
        self.reason = reason


class TotalsMismatch(SettlementError):
    default_code = "totals_mismatch"
    default_detail = "Order totals do not match the current prices. Please refresh your cart."


class AmountTooSmall(SettlementError):
    default_code = "amount_too_small"
    default_detail = "The order amount is below the minimum accepted by this payment method."


class SignatureError(SettlementError):
    default_code = "invalid_signature"
    default_detail = "Invalid signature."


class GatewayUnavailable(SettlementError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "gateway_unavailable"
    default_detail = "The payment provider is temporarily unavailable. Please try again."


class GatewayError(SettlementError):
    """Terminal rejection from a payment provider (not worth retrying)."""
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_code = "gateway_error"
    default_detail = "The payment provider rejected the request."


class StateConflict(SettlementError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "state_conflict"
    default_detail = "This change is not allowed in the current state."


class NotFound(SettlementError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_detail = "Not found."


def _first_message(data: Any) -> str:
    if isinstance(data, dict):
        for value in data.values():
            return _first_message(value)
        return ""
    if isinstance(data, (list, tuple)):
        return _first_message(data[0]) if data else ""
    return str(data)


def settlement_exception_handler(exc, context):
    """
    DRF EXCEPTION_HANDLER: normalise every error to ``{code, error, ...}``.

    Django model ValidationErrors (raised from ``full_clean`` or state
    transitions) are mapped to 400 so views do not need to catch them.
    """
    if isinstance(exc, DjangoValidationError):
        detail = exc.message_dict if hasattr(exc, "error_dict") else exc.messages
        exc = drf_exceptions.ValidationError(detail=detail)
    elif isinstance(exc, Http404):
        exc = NotFound()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, SettlementError):
        body = {"code": exc.code, "error": exc.message}
        body.update(exc.extra)
    elif isinstance(exc, drf_exceptions.ValidationError):
        body = {
            "code": "validation_error",
            "error": _first_message(response.data) or "Invalid request.",
            "fields": response.data,
        }
    else:
        codes = exc.get_codes() if isinstance(exc, drf_exceptions.APIException) else None
        body = {
            "code": codes if isinstance(codes, str) else "error",
            "error": _first_message(response.data),
        }

    request = context.get("request")
    if response.status_code >= 500:
        logger.error(
            "API error %s on %s: %s",
            body["code"], getattr(request, "path", "?"), body["error"],
        )
    else:
        logger.info(
            "API rejected %s on %s: %s",
            body["code"], getattr(request, "path", "?"), body["error"],
        )
    return Response(body, status=response.status_code, headers=_retry_headers(response))


def _retry_headers(response) -> Dict[str, str]:
    headers = {}
    for name in ("Retry-After", "WWW-Authenticate"):
        if response.has_header(name):
            headers[name] = response[name]
    return headers
