# products/urls.py

"""
PRODUCTS URLS

Registers the menu routes under /api/products/:
    /products/        admin CRUD
    /products/menu/   public menu (AllowAny)
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from products.views import ProductViewSet

router = DefaultRouter()
router.register(r"products", ProductViewSet, basename="products")

urlpatterns = [
    path("", include(router.urls)),
]
