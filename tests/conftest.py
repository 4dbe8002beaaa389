import os

import pytest
from rest_framework.test import APIClient

# Ensure development-like environment during tests if not provided externally
os.environ.setdefault("ENVIRONMENT", "development")


@pytest.fixture(autouse=True)
def _settlement_settings(settings):
    """Deterministic gateway/notification settings for every test."""
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.PAYMENT_CURRENCY = "ngn"
    settings.STRIPE_SECRET_KEY = "sk_test_dummy"
    settings.STRIPE_WEBHOOK_SECRET = "whsec_test_secret"
    settings.STRIPE_MIN_AMOUNT_NGN = "1000"
    settings.PAYSTACK_SECRET_KEY = "sk_test_paystack"
    settings.PAYSTACK_BASE_URL = "https://api.paystack.test"
    settings.PAYSTACK_CALLBACK_URL = "https://shop.example.com/order-confirmation"
    settings.GATEWAY_MAX_RETRIES = 2
    settings.GATEWAY_RETRY_BACKOFF_SECONDS = 0
    settings.STAFF_NOTIFICATION_EMAILS = ["kitchen@example.com"]
    settings.SUPPORT_EMAIL = "support@example.com"


@pytest.fixture
def api_client() -> APIClient:
    """Unauthenticated DRF APIClient.

    Use with endpoints that allow anonymous access, or combine with
    force_login/force_authenticate for authenticated flows.
    """
    return APIClient(enforce_csrf_checks=False)


@pytest.fixture
def user(db):
    """A persisted customer account."""
    from tests.factories import UserFactory
    return UserFactory(username="testuser", email="test@example.com")


@pytest.fixture
def staff_user(db):
    from tests.factories import StaffUserFactory

    return StaffUserFactory(username="kitchen", email="kitchen@example.com")


@pytest.fixture
def auth_api_client(api_client: APIClient, user):
    """APIClient authenticated as the provided user via force_authenticate."""
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def admin_api_client(staff_user):
    client = APIClient(enforce_csrf_checks=False)
    client.force_authenticate(user=staff_user)
    return client
