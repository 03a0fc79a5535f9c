# inventory/services/exceptions.py

"""
INVENTORY SERVICE ERRORS
"""


class InventoryServiceError(Exception):
    """Base exception for all inventory service failures."""


class InvalidTransactionError(InventoryServiceError):
    """Zero quantity, unknown type, or otherwise unusable ledger input."""


class LedgerDriftError(InventoryServiceError):
    """current_stock does not equal the sum of the ingredient's ledger."""

    def __init__(self, ingredient_id, cached, ledger):
        super().__init__(
            f"Ingredient {ingredient_id}: current_stock={cached} but ledger sums to {ledger}"
        )
        self.ingredient_id = ingredient_id
        self.cached = cached
        self.ledger = ledger
