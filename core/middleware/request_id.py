import re
import uuid
import logging
from threading import local

from django.utils.deprecation import MiddlewareMixin

# Thread-local storage for request ID
_thread_locals = local()

# Accept upstream ids (load balancer / gateway) only when they look sane
_INBOUND_ID = re.compile(r'^[A-Za-z0-9\-_.]{8,128}$')


class RequestIDMiddleware(MiddlewareMixin):
    """
    Tags every request with an id that is echoed in ``X-Request-ID`` and
    attached to every log record emitted while the request is handled.
    Webhook deliveries are correlated with provider retries through it.
    """

    def process_request(self, request):
        inbound = request.META.get('HTTP_X_REQUEST_ID', '')
        request_id = inbound if _INBOUND_ID.match(inbound or '') else str(uuid.uuid4())
        request.request_id = request_id
        _thread_locals.request_id = request_id
        return None

    def process_response(self, request, response):
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id
        _clear()
        return response

    def process_exception(self, request, exception):
        _clear()
        return None


def _clear():
    if hasattr(_thread_locals, 'request_id'):
        delattr(_thread_locals, 'request_id')


def get_request_id():
    """Current request id, or None outside a request."""
    return getattr(_thread_locals, 'request_id', None)


class RequestIDFilter(logging.Filter):
    """
    Logging filter that adds request ID to log records.
    """

    def filter(self, record):
        record.request_id = get_request_id() or 'no-request-id'
        return True
