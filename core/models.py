from django.db import models
from django.core.validators import RegexValidator


class SiteSetting(models.Model):
    """
    Operator-editable runtime configuration stored as key/value rows
    (e.g. ``deliveryFee.standard`` -> ``"3.00"``, ``vat.enabled`` -> ``"true"``).

    Values are plain strings; typed readers live next to their consumers
    (see ``orders.pricing.load_pricing_config``).
    """
    key = models.CharField(
        max_length=100,
        unique=True,
        validators=[
            RegexValidator(
                regex=r'^[A-Za-z0-9_.\-]+$',
                message="Setting key may only contain letters, digits, dots, dashes and underscores"
            )
        ],
        help_text="Dotted setting key, e.g. 'vat.rate'"
    )
    value = models.TextField(
        blank=True,
        help_text="Raw string value"
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['key']

    def __str__(self):
        return f"{self.key}={self.value}"

    @classmethod
    def get_values(cls, keys) -> dict:
        """Return ``{key: value}`` for the keys that exist."""
        return dict(cls.objects.filter(key__in=list(keys)).values_list('key', 'value'))

    @classmethod
    def put(cls, key: str, value: str) -> "SiteSetting":
        obj, _ = cls.objects.update_or_create(key=key, defaults={'value': value})
        return obj
