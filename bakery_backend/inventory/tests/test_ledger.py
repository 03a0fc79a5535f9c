# inventory/tests/test_ledger.py

from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import TestCase

from inventory.models import Ingredient, InventoryTransaction
from inventory.services.exceptions import InvalidTransactionError, LedgerDriftError
from inventory.services.ledger import (
    check_ledger,
    create_ingredient,
    ledger_balance,
    record_transaction,
    recompute_stock,
)

User = get_user_model()
TxType = InventoryTransaction.TransactionType


class LedgerTests(TestCase):
    """
    GUARANTEES:
    - current_stock == sum(transactions.quantity) after every write
    - stored quantity carries the sign for its type; caller sign is ignored
    - ledger rows are append-only
    """

    def setUp(self):
        self.admin = User.objects.create_user(
            email="a@example.com", password="pass1234", role="admin"
        )
        self.flour = create_ingredient(
            name="Flour", unit="kg", opening_stock="10.00", user=self.admin
        )

    def test_opening_stock_is_booked_as_manual_addition(self):
        self.assertEqual(self.flour.current_stock, Decimal("10.00"))

        tx = InventoryTransaction.objects.get(ingredient=self.flour)
        self.assertEqual(tx.transaction_type, TxType.MANUAL_ADDITION)
        self.assertEqual(tx.quantity, Decimal("10.00"))
        self.assertEqual(tx.performed_by, self.admin)

    def test_zero_opening_stock_writes_no_ledger_row(self):
        sugar = create_ingredient(name="Sugar", unit="kg", opening_stock="0")

        self.assertEqual(sugar.current_stock, Decimal("0.00"))
        self.assertFalse(sugar.transactions.exists())

    def test_usage_is_stored_negative_whatever_the_caller_sign(self):
        a = record_transaction(ingredient=self.flour, quantity="2.5", transaction_type=TxType.ORDER_USAGE)
        b = record_transaction(ingredient=self.flour, quantity="-1.5", transaction_type=TxType.ORDER_USAGE)

        self.assertEqual(a.quantity, Decimal("-2.50"))
        self.assertEqual(b.quantity, Decimal("-1.50"))

        self.flour.refresh_from_db()
        self.assertEqual(self.flour.current_stock, Decimal("6.00"))

    def test_restock_is_stored_positive(self):
        tx = record_transaction(ingredient=self.flour, quantity="-4", transaction_type=TxType.RESTOCK)

        self.assertEqual(tx.quantity, Decimal("4.00"))
        self.flour.refresh_from_db()
        self.assertEqual(self.flour.current_stock, Decimal("14.00"))

    def test_counter_always_matches_ledger(self):
        record_transaction(ingredient=self.flour, quantity="3", transaction_type=TxType.ORDER_USAGE)
        record_transaction(ingredient=self.flour, quantity="7.25", transaction_type=TxType.RESTOCK)
        record_transaction(ingredient=self.flour, quantity="20", transaction_type=TxType.ORDER_USAGE)

        self.flour.refresh_from_db()
        self.assertEqual(self.flour.current_stock, ledger_balance(self.flour))
        self.assertEqual(self.flour.current_stock, Decimal("-5.75"))
        check_ledger(self.flour)

    def test_zero_or_unknown_input_rejected(self):
        with self.assertRaises(InvalidTransactionError):
            record_transaction(ingredient=self.flour, quantity="0", transaction_type=TxType.RESTOCK)

        with self.assertRaises(InvalidTransactionError):
            record_transaction(ingredient=self.flour, quantity="1", transaction_type="spoilage")

        with self.assertRaises(InvalidTransactionError):
            record_transaction(ingredient=self.flour, quantity="abc", transaction_type=TxType.RESTOCK)

        self.assertEqual(self.flour.transactions.count(), 1)

    def test_transactions_are_immutable(self):
        tx = self.flour.transactions.get()

        tx.notes = "edited"
        with self.assertRaises(ValidationError):
            tx.save()

        with self.assertRaises(ValidationError):
            tx.delete()

    def test_drift_detected_and_recomputed(self):
        Ingredient.objects.filter(pk=self.flour.pk).update(current_stock=Decimal("99.00"))

        with self.assertRaises(LedgerDriftError):
            check_ledger(self.flour)

        correction = recompute_stock(self.flour)

        self.assertEqual(correction, Decimal("-89.00"))
        self.flour.refresh_from_db()
        self.assertEqual(self.flour.current_stock, Decimal("10.00"))
        check_ledger(self.flour)


class ReconcileCommandTests(TestCase):
    def setUp(self):
        self.butter = create_ingredient(name="Butter", unit="kg", opening_stock="4")
        Ingredient.objects.filter(pk=self.butter.pk).update(current_stock=Decimal("1.00"))

    def test_strict_fails_on_drift(self):
        with self.assertRaises(SystemExit):
            call_command("reconcile_inventory", "--strict", stdout=StringIO(), stderr=StringIO())

    def test_fix_resets_counter(self):
        call_command("reconcile_inventory", "--fix", stdout=StringIO(), stderr=StringIO())

        self.butter.refresh_from_db()
        self.assertEqual(self.butter.current_stock, Decimal("4.00"))

