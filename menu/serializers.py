from rest_framework import serializers

from .extras import load_extra_groups, load_global_groups
from .models import MenuCategory, MenuItem


class ResolvedExtraItemSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    group_id = serializers.IntegerField()
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    image_url = serializers.CharField(allow_blank=True)


class ResolvedExtraGroupSerializer(serializers.Serializer):
    """Serializes ``menu.extras.ResolvedExtraGroup`` snapshots."""
    id = serializers.IntegerField()
    name = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    is_global = serializers.BooleanField()
    min_selections = serializers.IntegerField()
    max_selections = serializers.IntegerField()
    items = ResolvedExtraItemSerializer(many=True)


class MenuCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = MenuCategory
        fields = ['id', 'name', 'sort_order']


class MenuItemSerializer(serializers.ModelSerializer):
    """
    Public menu item with its effective extra groups (global + linked,
    deduplicated, active only).
    """
    category = MenuCategorySerializer(read_only=True)
    extra_groups = serializers.SerializerMethodField()

    class Meta:
        model = MenuItem
        fields = [
            'id', 'name', 'description', 'price', 'image_url', 'variants',
            'category', 'extra_groups',
        ]
        read_only_fields = fields

    def _global_groups(self):
        # Context is shared by every item of a list, so globals load once per response
        if 'global_extra_groups' not in self.context:
            self.context['global_extra_groups'] = load_global_groups()
        return self.context['global_extra_groups']

    def get_extra_groups(self, obj):
        groups = load_extra_groups(obj, self._global_groups())
        return ResolvedExtraGroupSerializer(groups, many=True).data
