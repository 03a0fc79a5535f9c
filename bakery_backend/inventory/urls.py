# inventory/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from inventory.views import (
    IngredientViewSet,
    InventoryAnalyticsView,
    InventoryHealthView,
    TransactionExportView,
    TransactionListView,
)

router = DefaultRouter()
router.register(r"ingredients", IngredientViewSet, basename="ingredients")

urlpatterns = [
    path("transactions/", TransactionListView.as_view(), name="inventory-transactions"),
    path(
        "transactions/export/",
        TransactionExportView.as_view(),
        name="inventory-transactions-export",
    ),
    path("health/", InventoryHealthView.as_view(), name="inventory-health"),
    path("analytics/", InventoryAnalyticsView.as_view(), name="inventory-analytics"),
    path("", include(router.urls)),
]
