from .ingredient import Ingredient
from .inventory_transaction import InventoryTransaction

__all__ = [
    "Ingredient",
    "InventoryTransaction",
]
