# cart/tests/test_cart_store.py

from decimal import Decimal

from django.core.cache import caches
from django.test import TestCase

from cart.services.cart_store import CartItem, CartStore, cart_key


def _item(pid="p1", price="45.00", name="Classic Chocolate"):
    return CartItem(product_id=pid, name=name, price=Decimal(price), image_url="")


class CartStoreTests(TestCase):
    """
    Cart store tests.

    GUARANTEES:
    - Carts are keyed per user (no leakage across accounts)
    - Quantities never drop below 1 and product ids never repeat
    - Every mutation is persisted in full
    """

    def setUp(self):
        self.store = CartStore()
        self.user_a = "user-a"
        self.user_b = "user-b"

    def test_empty_cart_loads_as_empty_list(self):
        self.assertEqual(self.store.load(self.user_a), [])

    def test_add_appends_with_quantity_one(self):
        items = self.store.add_or_increment(self.user_a, _item())

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].quantity, 1)
        self.assertEqual(self.store.load(self.user_a), items)

    def test_add_existing_increments_instead_of_duplicating(self):
        self.store.add_or_increment(self.user_a, _item())
        items = self.store.add_or_increment(self.user_a, _item())

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].quantity, 2)

    def test_update_quantity_clamps_to_one(self):
        self.store.add_or_increment(self.user_a, _item())
        self.store.update_quantity(self.user_a, "p1", 3)
        items = self.store.update_quantity(self.user_a, "p1", -10)

        self.assertEqual(items[0].quantity, 1)

    def test_update_quantity_unknown_product_is_noop(self):
        self.store.add_or_increment(self.user_a, _item())
        items = self.store.update_quantity(self.user_a, "missing", 5)

        self.assertEqual([(i.product_id, i.quantity) for i in items], [("p1", 1)])

    def test_remove_filters_item_out(self):
        self.store.add_or_increment(self.user_a, _item("p1"))
        self.store.add_or_increment(self.user_a, _item("p2", name="Berry Bliss"))

        items = self.store.remove(self.user_a, "p1")

        self.assertEqual([i.product_id for i in items], ["p2"])

    def test_carts_are_isolated_per_user(self):
        self.store.add_or_increment(self.user_a, _item())

        self.assertEqual(self.store.load(self.user_b), [])

    def test_mixed_mutation_sequence_keeps_invariants(self):
        ops = [
            ("add", "p1", 0),
            ("add", "p2", 0),
            ("add", "p1", 0),
            ("upd", "p2", -5),
            ("upd", "p1", 2),
            ("rm", "p2", 0),
            ("add", "p2", 0),
            ("upd", "p1", -100),
        ]
        for op, pid, delta in ops:
            if op == "add":
                self.store.add_or_increment(self.user_a, _item(pid))
            elif op == "upd":
                self.store.update_quantity(self.user_a, pid, delta)
            else:
                self.store.remove(self.user_a, pid)

            items = self.store.load(self.user_a)
            ids = [i.product_id for i in items]
            self.assertEqual(len(ids), len(set(ids)))
            self.assertTrue(all(i.quantity >= 1 for i in items))

    def test_total_is_sum_of_price_times_quantity(self):
        items = [
            CartItem(product_id="a", name="A", price=Decimal("10.00"), quantity=2),
            CartItem(product_id="b", name="B", price=Decimal("15.50"), quantity=1),
        ]
        self.assertEqual(CartStore.total(items), Decimal("35.50"))

    def test_corrupt_entry_is_discarded(self):
        caches["carts"].set(cart_key(self.user_a), "not-json", timeout=None)

        self.assertEqual(self.store.load(self.user_a), [])
        self.assertIsNone(caches["carts"].get(cart_key(self.user_a)))

    def test_clear(self):
        self.store.add_or_increment(self.user_a, _item())
        self.store.clear(self.user_a)

        self.assertEqual(self.store.load(self.user_a), [])
