# inventory/tests/test_inventory_api.py

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from inventory.models import Ingredient, InventoryTransaction
from inventory.services.ledger import create_ingredient, record_transaction

User = get_user_model()
TxType = InventoryTransaction.TransactionType


class InventoryApiTests(TestCase):
    """
    GUARANTEES:
    - Inventory endpoints are admin-only
    - current_stock cannot be written through ingredient CRUD
    - History is newest-first and filterable; CSV export carries a dated filename
    """

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.admin = User.objects.create_user(
            email="a@example.com", password="pass1234", role="admin"
        )
        self.customer = User.objects.create_user(email="c@example.com", password="pass1234")
        self.client.force_authenticate(self.admin)

        self.flour = create_ingredient(
            name="Flour", unit="kg", opening_stock="10", cost_per_unit=Decimal("2.50")
        )

    def test_customer_forbidden(self):
        self.client.force_authenticate(self.customer)

        self.assertEqual(self.client.get("/api/inventory/ingredients/").status_code, 403)
        self.assertEqual(self.client.get("/api/inventory/transactions/").status_code, 403)

    def test_create_with_opening_stock_ignores_current_stock(self):
        res = self.client.post(
            "/api/inventory/ingredients/",
            {"name": "Sugar", "unit": "kg", "opening_stock": "12.50", "current_stock": "999"},
            format="json",
        )

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["current_stock"], "12.50")
        self.assertNotIn("opening_stock", res.data)

        sugar = Ingredient.objects.get(name="Sugar")
        self.assertEqual(sugar.transactions.get().transaction_type, TxType.MANUAL_ADDITION)

    def test_patch_cannot_move_stock(self):
        res = self.client.patch(
            f"/api/inventory/ingredients/{self.flour.id}/",
            {"current_stock": "500", "minimum_stock": "3"},
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["current_stock"], "10.00")
        self.assertEqual(res.data["minimum_stock"], "3.00")

    def test_search(self):
        create_ingredient(name="Cocoa Powder", unit="kg")

        res = self.client.get("/api/inventory/ingredients/", {"q": "cocoa"})

        self.assertEqual([r["name"] for r in res.data], ["Cocoa Powder"])

    def test_delete_with_history_conflicts(self):
        res = self.client.delete(f"/api/inventory/ingredients/{self.flour.id}/")
        self.assertEqual(res.status_code, 409)

        fresh = create_ingredient(name="Vanilla", unit="ml")
        res = self.client.delete(f"/api/inventory/ingredients/{fresh.id}/")
        self.assertEqual(res.status_code, 204)

    def test_record_transaction(self):
        res = self.client.post(
            "/api/inventory/transactions/",
            {
                "ingredient": str(self.flour.id),
                "quantity": "3",
                "transaction_type": "order_usage",
                "notes": "Morning batch",
            },
            format="json",
        )

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["quantity"], "-3.00")
        self.assertEqual(res.data["performed_by_email"], "a@example.com")

        self.flour.refresh_from_db()
        self.assertEqual(self.flour.current_stock, Decimal("7.00"))

    def test_record_rejects_zero(self):
        res = self.client.post(
            "/api/inventory/transactions/",
            {"ingredient": str(self.flour.id), "quantity": "0", "transaction_type": "restock"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)

    def test_history_newest_first_and_filters(self):
        old = record_transaction(ingredient=self.flour, quantity="1", transaction_type=TxType.RESTOCK)
        InventoryTransaction.objects.filter(pk=old.pk).update(
            created_at=timezone.now() - timedelta(days=40)
        )
        newest = record_transaction(
            ingredient=self.flour, quantity="2", transaction_type=TxType.ORDER_USAGE
        )

        res = self.client.get("/api/inventory/transactions/")
        self.assertEqual(res.data["count"], 3)
        self.assertEqual(res.data["results"][0]["id"], str(newest.id))

        res = self.client.get("/api/inventory/transactions/", {"period": "month"})
        self.assertEqual(res.data["count"], 2)

        res = self.client.get("/api/inventory/transactions/", {"transaction_type": "order_usage"})
        self.assertEqual(res.data["count"], 1)

        res = self.client.get("/api/inventory/transactions/", {"limit": "1"})
        self.assertEqual(res.data["count"], 1)

        res = self.client.get("/api/inventory/transactions/", {"period": "decade"})
        self.assertEqual(res.status_code, 400)

    def test_csv_export(self):
        record_transaction(
            ingredient=self.flour,
            quantity="5",
            transaction_type=TxType.ORDER_USAGE,
            notes="Cake, large",
        )

        res = self.client.get("/api/inventory/transactions/export/", {"period": "week"})

        self.assertEqual(res.status_code, 200)
        today = timezone.localdate().isoformat()
        self.assertIn(
            f'filename="inventory-transactions-week-{today}.csv"', res["Content-Disposition"]
        )

        lines = res.content.decode("utf-8").strip().splitlines()
        self.assertEqual(lines[0], "Date,Ingredient,Quantity,Type,Notes")
        self.assertEqual(len(lines), 3)
        self.assertIn("Flour,-5.00 kg,Order Usage,\"Cake, large\"", lines[1])

    def test_health(self):
        yesterday = timezone.localdate() - timedelta(days=1)
        create_ingredient(
            name="Cream",
            unit="l",
            opening_stock="3",
            cost_per_unit=Decimal("1.00"),
            expiry_date=yesterday,
        )
        create_ingredient(
            name="Eggs",
            unit="dozen",
            opening_stock="1",
            minimum_stock=Decimal("5"),
            cost_per_unit=Decimal("4.00"),
        )

        res = self.client.get("/api/inventory/health/")

        self.assertEqual(res.data["expired"], 1)
        self.assertEqual(res.data["low_stock"], 1)
        self.assertEqual(res.data["healthy"], 1)
        self.assertEqual(res.data["total_value"], "32.00")

    def test_analytics(self):
        sugar = create_ingredient(name="Sugar", unit="kg", opening_stock="3")
        record_transaction(ingredient=self.flour, quantity="4", transaction_type=TxType.ORDER_USAGE)

        res = self.client.get("/api/inventory/analytics/")

        top = res.data["top_ingredients"]
        self.assertEqual(top[0]["name"], "Flour")
        self.assertEqual(top[0]["total_quantity"], "14.00")
        self.assertEqual(top[1]["ingredient_id"], str(sugar.id))

        dist = {r["transaction_type"]: r["count"] for r in res.data["type_distribution"]}
        self.assertEqual(dist, {"manual_addition": 2, "order_usage": 1})
