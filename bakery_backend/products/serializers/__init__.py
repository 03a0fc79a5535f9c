# products/serializers/__init__.py

from .product import MenuItemSerializer, ProductSerializer

__all__ = [
    "ProductSerializer",
    "MenuItemSerializer",
]
