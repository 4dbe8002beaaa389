# orders/api_urls.py
from __future__ import annotations

from django.urls import path

from . import api_views

urlpatterns = [
    # Storefront
    path("checkout/prepare/", api_views.prepare_checkout_view, name="checkout-prepare"),
    path("orders/", api_views.create_order_view, name="order-create"),
    path("orders/confirm/", api_views.confirm_order_view, name="order-confirm"),
    path("orders/track/<str:order_number>/", api_views.track_order_view, name="order-track"),
    path("settings/delivery-fee/", api_views.delivery_fee_settings_view, name="settings-delivery-fee"),
    path("settings/vat/", api_views.vat_settings_view, name="settings-vat"),

    # Back office
    path("admin/orders/<str:order_number>/status/", api_views.update_order_status_view, name="admin-order-status"),
    path("admin/settings/delivery-fee/", api_views.admin_delivery_fee_settings_view, name="admin-settings-delivery-fee"),
    path("admin/settings/vat/", api_views.admin_vat_settings_view, name="admin-settings-vat"),
]

# POST   /api/checkout/prepare/                     - Price a cart (no persistence)
# POST   /api/orders/                               - Create order with pinned breakdown
# POST   /api/orders/confirm/                       - Verify payment with the gateway and reconcile
# GET    /api/orders/track/{order_number}/          - Public order snapshot
# GET    /api/settings/delivery-fee/                - Current delivery fees
# GET    /api/settings/vat/                         - Current VAT settings
# PUT    /api/admin/orders/{order_number}/status/   - Operator status change (staff)
# GET|PUT /api/admin/settings/delivery-fee/         - Delivery fees (staff)
# GET|PUT /api/admin/settings/vat/                  - VAT settings (staff)
