# orders/services/feedback.py

from __future__ import annotations

import logging

from django.db import IntegrityError, transaction

from orders.models import Order, OrderFeedback, OrderStatus
from orders.services.exceptions import FeedbackAlreadyExists, FeedbackNotAllowed

logger = logging.getLogger(__name__)


def can_leave_feedback(order: Order, user_id) -> bool:
    """
    Delivered, owned by the user, and no feedback from them yet.
    """
    if order.status != OrderStatus.DELIVERED or str(order.user_id) != str(user_id):
        return False
    return not any(str(f.user_id) == str(user_id) for f in order.feedback.all())


def submit_feedback(*, order: Order, session, rating: int, comment: str = "") -> OrderFeedback:
    if str(order.user_id) != session.user_id:
        raise FeedbackNotAllowed("You can only review your own orders")

    if order.status != OrderStatus.DELIVERED:
        raise FeedbackNotAllowed("Feedback is only accepted for delivered orders")

    if OrderFeedback.objects.filter(order=order, user_id=session.user_id).exists():
        raise FeedbackAlreadyExists("Feedback already submitted for this order")

    try:
        with transaction.atomic():
            feedback = OrderFeedback.objects.create(
                order=order,
                user_id=session.user_id,
                rating=int(rating),
                comment=(comment or "").strip(),
            )
    except IntegrityError as exc:
        raise FeedbackAlreadyExists("Feedback already submitted for this order") from exc

    logger.info(
        "Order feedback recorded",
        extra={"order_id": str(order.id), "user_id": session.user_id, "rating": int(rating)},
    )
    return feedback
