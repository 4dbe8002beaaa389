from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils.html import strip_tags


class MenuCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    sort_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['sort_order', 'name']
        verbose_name_plural = "Menu categories"

    def __str__(self):
        return self.name


class MenuItem(models.Model):
    """
    A catalog dish. Its extra groups are the active global groups plus the
    groups linked through ``MenuItemExtraGroup`` (see ``menu.extras``).
    """
    category = models.ForeignKey(
        MenuCategory,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="menu_items",
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, max_length=1000)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[
            MinValueValidator(Decimal('0.00')),
            MaxValueValidator(Decimal('9999999.99'))
        ],
        help_text="Base item price"
    )
    image_url = models.URLField(blank=True)
    variants = models.JSONField(
        default=list,
        blank=True,
        help_text='Priced variants, e.g. [{"name": "Large", "price": "12.50"}]'
    )
    is_available = models.BooleanField(
        default=True,
        help_text="Whether this item can be ordered"
    )
    extra_groups = models.ManyToManyField(
        'menu.ExtraGroup',
        through='menu.MenuItemExtraGroup',
        related_name='linked_menu_items',
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_available', 'name'], name='menu_menuit_is_avai_8e7a41_idx'),
        ]

    def clean(self):
        super().clean()
        if self.name:
            self.name = strip_tags(self.name).strip()
        for variant in self.variants or []:
            if not isinstance(variant, dict) or not variant.get('name'):
                raise ValidationError({'variants': 'Each variant needs a name and a price.'})
            try:
                if Decimal(str(variant.get('price'))) < 0:
                    raise ValidationError({'variants': 'Variant prices must be zero or greater.'})
            except ArithmeticError:
                raise ValidationError({'variants': f"Invalid price for variant {variant.get('name')!r}."})

    def variant_price(self, name):
        """Catalog price of the named variant, or None when the item has no such variant."""
        if not name:
            return None
        for variant in self.variants or []:
            if isinstance(variant, dict) and str(variant.get('name', '')).strip().lower() == str(name).strip().lower():
                return Decimal(str(variant.get('price')))
        return None

    def __str__(self):
        return self.name


class ExtraGroup(models.Model):
    """
    A set of optional add-ons with selection-count rules.

    ``is_global`` groups apply to every menu item; others apply only where
    linked. ``max_selections == 0`` means unbounded.
    """
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, max_length=500)
    is_global = models.BooleanField(
        default=False,
        help_text="Offer this group on every menu item"
    )
    min_selections = models.PositiveIntegerField(
        default=0,
        validators=[MaxValueValidator(50)],
        help_text="Minimum number of selections when the group is used"
    )
    max_selections = models.PositiveIntegerField(
        default=0,
        validators=[MaxValueValidator(50)],
        help_text="Maximum number of selections (0 = unbounded)"
    )
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sort_order', 'name']
        indexes = [
            models.Index(fields=['is_global', 'is_active'], name='menu_extrag_is_glob_5b1c2e_idx'),
        ]

    def clean(self):
        super().clean()
        if self.max_selections and self.min_selections > self.max_selections:
            raise ValidationError({
                'max_selections': 'Maximum selections must be 0 (unbounded) or at least the minimum.'
            })

    def __str__(self):
        scope = "global" if self.is_global else "item"
        return f"{self.name} ({scope})"


class ExtraItem(models.Model):
    group = models.ForeignKey(
        ExtraGroup,
        on_delete=models.CASCADE,
        related_name="items",
    )
    name = models.CharField(max_length=100)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
    )
    image_url = models.URLField(blank=True)
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['sort_order', 'name']

    def __str__(self):
        return f"{self.name} (+{self.price})"


class MenuItemExtraGroup(models.Model):
    """Explicit link between a menu item and an item-scoped extra group."""
    menu_item = models.ForeignKey(
        MenuItem,
        on_delete=models.CASCADE,
        related_name="extra_group_links",
    )
    extra_group = models.ForeignKey(
        ExtraGroup,
        on_delete=models.CASCADE,
        related_name="menu_item_links",
    )
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['menu_item', 'sort_order', 'extra_group__name']
        constraints = [
            models.UniqueConstraint(
                fields=['menu_item', 'extra_group'],
                name='unique_menu_item_extra_group'
            ),
        ]

    def __str__(self):
        return f"{self.menu_item} -> {self.extra_group}"
