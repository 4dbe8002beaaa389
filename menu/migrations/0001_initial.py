from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='MenuCategory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('sort_order', models.PositiveIntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'verbose_name_plural': 'Menu categories',
                'ordering': ['sort_order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='ExtraGroup',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('description', models.TextField(blank=True, max_length=500)),
                ('is_global', models.BooleanField(default=False, help_text='Offer this group on every menu item')),
                ('min_selections', models.PositiveIntegerField(default=0, help_text='Minimum number of selections when the group is used', validators=[django.core.validators.MaxValueValidator(50)])),
                ('max_selections', models.PositiveIntegerField(default=0, help_text='Maximum number of selections (0 = unbounded)', validators=[django.core.validators.MaxValueValidator(50)])),
                ('is_active', models.BooleanField(default=True)),
                ('sort_order', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['sort_order', 'name'],
                'indexes': [models.Index(fields=['is_global', 'is_active'], name='menu_extrag_is_glob_5b1c2e_idx')],
            },
        ),
        migrations.CreateModel(
            name='MenuItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, max_length=1000)),
                ('price', models.DecimalField(decimal_places=2, help_text='Base item price', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00')), django.core.validators.MaxValueValidator(Decimal('9999999.99'))])),
                ('image_url', models.URLField(blank=True)),
                ('variants', models.JSONField(blank=True, default=list, help_text='Priced variants, e.g. [{"name": "Large", "price": "12.50"}]')),
                ('is_available', models.BooleanField(default=True, help_text='Whether this item can be ordered')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='menu_items', to='menu.menucategory')),
            ],
            options={
                'ordering': ['name'],
                'indexes': [models.Index(fields=['is_available', 'name'], name='menu_menuit_is_avai_8e7a41_idx')],
            },
        ),
        migrations.CreateModel(
            name='ExtraItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('image_url', models.URLField(blank=True)),
                ('is_active', models.BooleanField(default=True)),
                ('sort_order', models.PositiveIntegerField(default=0)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='menu.extragroup')),
            ],
            options={
                'ordering': ['sort_order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='MenuItemExtraGroup',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sort_order', models.PositiveIntegerField(default=0)),
                ('extra_group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='menu_item_links', to='menu.extragroup')),
                ('menu_item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='extra_group_links', to='menu.menuitem')),
            ],
            options={
                'ordering': ['menu_item', 'sort_order', 'extra_group__name'],
                'constraints': [models.UniqueConstraint(fields=('menu_item', 'extra_group'), name='unique_menu_item_extra_group')],
            },
        ),
        migrations.AddField(
            model_name='menuitem',
            name='extra_groups',
            field=models.ManyToManyField(blank=True, related_name='linked_menu_items', through='menu.MenuItemExtraGroup', to='menu.extragroup'),
        ),
    ]
