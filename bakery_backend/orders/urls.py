# orders/urls.py

from django.urls import path

from . import views

app_name = "orders"

urlpatterns = [
    path("", views.OrderListView.as_view(), name="order-list"),
    path("checkout/", views.CheckoutView.as_view(), name="checkout"),
    path("changes/", views.OrderChangesView.as_view(), name="order-changes"),
    # ---------------- ADMIN ----------------
    path("admin/dashboard/", views.AdminDashboardView.as_view(), name="admin-dashboard"),
    path("admin/revenue/", views.AdminRevenueView.as_view(), name="admin-revenue"),
    path(
        "admin/product-performance/",
        views.AdminProductPerformanceView.as_view(),
        name="admin-product-performance",
    ),
    # ---------------- PER ORDER ----------------
    path("<uuid:order_id>/", views.OrderDetailView.as_view(), name="order-detail"),
    path("<uuid:order_id>/status/", views.OrderStatusView.as_view(), name="order-status"),
    path(
        "<uuid:order_id>/confirmation/",
        views.OrderConfirmationView.as_view(),
        name="order-confirmation",
    ),
    path("<uuid:order_id>/feedback/", views.OrderFeedbackView.as_view(), name="order-feedback"),
]
