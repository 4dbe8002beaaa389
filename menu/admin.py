from django.contrib import admin

from .models import MenuItem, MenuCategory, ExtraGroup, ExtraItem, MenuItemExtraGroup


class ExtraItemInline(admin.TabularInline):
    model = ExtraItem
    extra = 1
    fields = ("name", "price", "image_url", "is_active", "sort_order")


class MenuItemExtraGroupInline(admin.TabularInline):
    model = MenuItemExtraGroup
    extra = 0
    autocomplete_fields = ("extra_group",)
    fields = ("extra_group", "sort_order")


@admin.register(MenuCategory)
class MenuCategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "sort_order", "is_active")
    list_editable = ("sort_order", "is_active")


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "price", "is_available", "updated_at")
    list_filter = ("is_available", "category")
    search_fields = ("name", "description")
    inlines = [MenuItemExtraGroupInline]


@admin.register(ExtraGroup)
class ExtraGroupAdmin(admin.ModelAdmin):
    list_display = ("name", "is_global", "min_selections", "max_selections", "is_active", "sort_order")
    list_filter = ("is_global", "is_active")
    search_fields = ("name",)
    inlines = [ExtraItemInline]
