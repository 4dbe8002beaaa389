# payments/urls.py
from __future__ import annotations

from django.urls import path

from . import views

app_name = 'payments'

urlpatterns = [
    # Payment Intent Management
    path('intents/', views.create_payment_intent, name='create_payment_intent'),

    # Webhook Processing (one per gateway)
    path('webhooks/stripe/', views.stripe_webhook, name='stripe_webhook'),
    path('webhooks/paystack/', views.paystack_webhook, name='paystack_webhook'),
]
