# menu/api_urls.py
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .api_views import MenuItemViewSet

router = SimpleRouter()
router.register(r'menu', MenuItemViewSet, basename='menuitem')

urlpatterns = [
    path('', include(router.urls)),
]

# /api/menu/                - available items with resolved extras
# /api/menu/{id}/           - one item
# /api/menu/{id}/extras/    - resolved extra groups for one item
