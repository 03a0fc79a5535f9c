# orders/services/exceptions.py

"""
ORDER SERVICE ERRORS

Views translate these into {"error": ...} bodies:
- CheckoutValidationError  -> 400
- CheckoutForbiddenError   -> 403
- CheckoutPersistenceError -> 500
- InvalidStatusTransition  -> 409
- FeedbackNotAllowed       -> 400
- FeedbackAlreadyExists    -> 409
"""


class OrderServiceError(Exception):
    """Base exception for all order service failures."""


class CheckoutError(OrderServiceError):
    """Base for checkout failures."""


class CheckoutValidationError(CheckoutError):
    """Submitted cart snapshot is empty or malformed."""


class CheckoutForbiddenError(CheckoutError):
    """Caller tried to check out on behalf of another user."""


class CheckoutPersistenceError(CheckoutError):
    """Order rows could not be written after the payment intent was created."""


class InvalidStatusTransition(OrderServiceError):
    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move order from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class FeedbackNotAllowed(OrderServiceError):
    """Order is not delivered, or the caller does not own it."""


class FeedbackAlreadyExists(OrderServiceError):
    """Feedback for this (order, user) pair is already recorded."""
