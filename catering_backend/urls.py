# catering_backend/urls.py
from __future__ import annotations

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    # Django default admin interface
    path("admin/", admin.site.urls),

    # API Documentation
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),

    # ---- REST APIs ----
    path("api/", include(("menu.api_urls", "menu_api"), namespace="menu_api")),
    path("api/", include(("orders.api_urls", "orders_api"), namespace="orders_api")),
    # Payment intents + gateway webhooks
    path("api/payments/", include("payments.urls", namespace="payments")),
]
