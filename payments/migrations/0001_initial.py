from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orders', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('payment_intent_id', models.CharField(help_text='Gateway reference (Stripe PaymentIntent id or Paystack reference)', max_length=255, unique=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('PAID', 'Paid'), ('FAILED', 'Failed')], db_index=True, default='PENDING', max_length=10)),
                ('gateway', models.CharField(choices=[('STRIPE', 'Stripe'), ('PAYSTACK', 'Paystack')], max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, help_text='Amount requested from the gateway (major units)', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('currency', models.CharField(default='ngn', help_text='ISO currency code', max_length=3)),
                ('gateway_response', models.JSONField(blank=True, default=dict, help_text='Raw payload of the last gateway response or event applied')),
                ('processed_at', models.DateTimeField(blank=True, help_text='When the payment reached a terminal status', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='orders.order')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['order', '-created_at'], name='payments_pa_order_i_2d6b0e_idx'),
                    models.Index(fields=['gateway', 'status'], name='payments_pa_gateway_7c91a4_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='WebhookEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event_key', models.CharField(help_text='Provider event id, or reference:outcome when none is sent', max_length=255, unique=True)),
                ('gateway', models.CharField(choices=[('STRIPE', 'Stripe'), ('PAYSTACK', 'Paystack')], max_length=20)),
                ('event_type', models.CharField(blank=True, help_text='Provider event type (e.g. payment_intent.succeeded, charge.success)', max_length=100)),
                ('provider_reference', models.CharField(blank=True, db_index=True, max_length=255)),
                ('outcome', models.CharField(blank=True, max_length=10)),
                ('processed', models.BooleanField(default=False, help_text='Whether this event has been successfully applied')),
                ('processing_attempts', models.PositiveIntegerField(default=0, help_text='Number of processing attempts')),
                ('event_data', models.JSONField(blank=True, default=dict, help_text='Full provider event payload')),
                ('result', models.CharField(blank=True, help_text='What reconciliation did with the event', max_length=40)),
                ('last_error', models.TextField(blank=True, help_text='Last processing error if any')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('processed_at', models.DateTimeField(blank=True, help_text='When event was successfully processed', null=True)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['processed'], name='payments_we_process_0a3f5c_idx'),
                    models.Index(fields=['-created_at'], name='payments_we_created_9e2b71_idx'),
                ],
            },
        ),
    ]
