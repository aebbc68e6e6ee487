# services/payments.py
import logging
from typing import Iterable

from sqlalchemy.orm import Session

from errors import InvalidTransition, NotFoundError, ValidationError
from models.order import Order, OrderStatusEnum
from models.user import User
from services import orders, stripe_client

logger = logging.getLogger(__name__)


def start_checkout(db: Session, user: User, template_ids: Iterable[str]) -> dict:
    """
    Pending order + Stripe payment intent.

    If Stripe fails the order stays pending; the client retries.
    """
    order = orders.create_order(db, user, template_ids)
    intent = stripe_client.create_payment_intent(order.id, order.total_amount)
    orders.attach_payment_intent(db, order, intent.id)
    return {"client_secret": intent.client_secret, "order_id": order.id}


def confirm_payment(db: Session, user: User, order_id: str, payment_intent_id: str) -> Order:
    order = orders.get_user_order(db, user, order_id)
    if order.status == OrderStatusEnum.completed:
        logger.info("order %s already completed, confirmation is a no-op", order.id)
        return order

    # ποτέ με βάση μόνο αυτά που λέει ο client: ρωτάμε το Stripe
    intent = stripe_client.retrieve_payment_intent(payment_intent_id)
    belongs = intent.order_id == order.id or (
        order.stripe_payment_intent_id is not None and order.stripe_payment_intent_id == intent.id
    )
    if not belongs:
        raise ValidationError(
            "Payment intent does not belong to this order",
            orderId=order.id, paymentIntentId=payment_intent_id,
        )
    if intent.status != "succeeded":
        raise ValidationError("Payment not successful", paymentStatus=intent.status)

    if order.stripe_payment_intent_id is None:
        orders.attach_payment_intent(db, order, intent.id)
    return orders.complete_order(db, order)


def cancel_checkout(db: Session, user: User, order_id: str) -> Order:
    order = orders.get_user_order(db, user, order_id)
    if order.status == OrderStatusEnum.pending and order.stripe_payment_intent_id:
        # πρώτα στο Stripe, ώστε να μη χρεωθεί μια ακυρωμένη παραγγελία
        stripe_client.cancel_payment_intent(order.stripe_payment_intent_id)
    return orders.cancel_order(db, order)


def handle_webhook_event(db: Session, event) -> str:
    event_type = event["type"]
    intent = stripe_client.intent_info(event["data"]["object"])
    logger.info("Stripe webhook received: %s (intent=%s order=%s)", event_type, intent.id, intent.order_id)

    if event_type not in ("payment_intent.succeeded", "payment_intent.canceled"):
        return "ignored"
    if not intent.order_id:
        logger.warning("webhook %s without orderId metadata", event_type)
        return "ignored - missing metadata"

    try:
        order = orders.get_order(db, intent.order_id)
    except NotFoundError:
        logger.warning("webhook %s for unknown order %s", event_type, intent.order_id)
        return "ignored - order not found"

    if event_type == "payment_intent.succeeded":
        if order.status in (OrderStatusEnum.cancelled, OrderStatusEnum.refunded):
            # απαντάμε 200 ώστε το Stripe να μην ξαναστέλνει το event
            logger.warning("webhook %s for %s order %s", event_type, order.status.value, order.id)
            return f"ignored - order {order.status.value}"
        if order.stripe_payment_intent_id is None:
            orders.attach_payment_intent(db, order, intent.id)
        try:
            orders.complete_order(db, order)
        except InvalidTransition as e:
            logger.warning("webhook %s lost the race for order %s: %s", event_type, order.id, e.message)
            return f"ignored - order {order.status.value}"
        return "completed"

    if order.status == OrderStatusEnum.pending:
        orders.cancel_order(db, order)
        return "cancelled"
    return "ignored"
