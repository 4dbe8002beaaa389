from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .extras import load_extra_groups
from .models import MenuItem
from .serializers import MenuItemSerializer, ResolvedExtraGroupSerializer


class MenuItemViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Public catalog: available items ordered by name, each carrying its
    resolved extra groups.
    """
    serializer_class = MenuItemSerializer
    permission_classes = [AllowAny]
    pagination_class = None
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['category']
    search_fields = ['name', 'description']

    def get_queryset(self):
        return (
            MenuItem.objects.filter(is_available=True)
            .select_related('category')
            .prefetch_related('extra_group_links__extra_group__items')
            .order_by('name')
        )

    @action(detail=True, methods=['get'])
    def extras(self, request, pk=None):
        item = self.get_object()
        groups = load_extra_groups(item)
        return Response(ResolvedExtraGroupSerializer(groups, many=True).data)
