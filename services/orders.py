# services/orders.py
"""
Order lifecycle.

    pending -> completed | cancelled
    completed -> refunded

Orders are created together with their items in one transaction, with the
template price snapshotted on every item. Completion is a compare-and-swap on
the status column, so only one request ever increments the download counters.
"""
import logging
from decimal import Decimal
from typing import Iterable, List

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from errors import ConflictError, InvalidTransition, NotFoundError, ValidationError
from models.order import Order, OrderItem, OrderStatusEnum
from models.template import Template
from models.user import User

logger = logging.getLogger(__name__)

ORDER_TRANSITIONS = {
    OrderStatusEnum.pending: {OrderStatusEnum.completed, OrderStatusEnum.cancelled},
    OrderStatusEnum.completed: {OrderStatusEnum.refunded},
    OrderStatusEnum.cancelled: set(),
    OrderStatusEnum.refunded: set(),
}


def can_transition(current: OrderStatusEnum, target: OrderStatusEnum) -> bool:
    return target in ORDER_TRANSITIONS.get(current, set())


def create_order(db: Session, user: User, template_ids: Iterable[str]) -> Order:
    template_ids = list(template_ids)
    if not template_ids:
        raise ValidationError("Template IDs are required", field="templateIds")

    seen = set()
    for template_id in template_ids:
        if template_id in seen:
            raise ConflictError(f"Template {template_id} is already in the cart", templateId=template_id)
        seen.add(template_id)

    # ξαναδιαβάζουμε κάθε template: το cart του client μπορεί να είναι παλιό
    templates = {
        t.id: t
        for t in db.query(Template).filter(Template.id.in_(template_ids), Template.is_active.is_(True)).all()
    }
    for template_id in template_ids:
        if template_id not in templates:
            raise NotFoundError(f"Template {template_id} not found", templateId=template_id)

    items = [OrderItem(template_id=tid, price=templates[tid].price) for tid in template_ids]
    total = sum((Decimal(item.price) for item in items), Decimal("0.00"))

    order = Order(
        user_id=user.id,
        status=OrderStatusEnum.pending,
        total_amount=total,
        items=items,
    )
    try:
        db.add(order)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    logger.info("order %s created for user %s: %d item(s), total %s", order.id, user.id, len(items), total)
    return order


def get_order(db: Session, order_id: str) -> Order:
    order = (
        db.query(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.template))
        .filter(Order.id == order_id)
        .first()
    )
    if order is None:
        raise NotFoundError("Order not found", orderId=order_id)
    return order


def get_user_order(db: Session, user: User, order_id: str) -> Order:
    order = get_order(db, order_id)
    # ξένη παραγγελία = 404, δεν αποκαλύπτουμε ότι υπάρχει
    if order.user_id != user.id:
        raise NotFoundError("Order not found", orderId=order_id)
    return order


def attach_payment_intent(db: Session, order: Order, payment_intent_id: str) -> Order:
    order.stripe_payment_intent_id = payment_intent_id
    db.commit()
    db.refresh(order)
    return order


def transition_order(db: Session, order: Order, target: OrderStatusEnum) -> bool:
    """
    Atomically move `order` from its current status to `target`.

    Returns False when another request changed the status first.
    """
    current = order.status
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot move order from {current.value} to {target.value}",
            orderId=order.id, status=current.value,
        )
    result = db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == current)
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    won = result.rowcount == 1
    if won:
        logger.info("order %s: %s -> %s", order.id, current.value, target.value)
    return won


def complete_order(db: Session, order: Order) -> Order:
    """Mark a paid order completed; idempotent."""
    if order.status == OrderStatusEnum.completed:
        return order
    try:
        if transition_order(db, order, OrderStatusEnum.completed):
            template_ids = {item.template_id for item in order.items}
            db.execute(
                update(Template)
                .where(Template.id.in_(template_ids))
                .values(downloads=Template.downloads + 1)
                .execution_options(synchronize_session=False)
            )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    if order.status != OrderStatusEnum.completed:
        # κάποιος άλλος την ακύρωσε στο μεταξύ
        raise InvalidTransition(
            "Order can no longer be completed", orderId=order.id, status=order.status.value,
        )
    return order


def cancel_order(db: Session, order: Order) -> Order:
    try:
        transition_order(db, order, OrderStatusEnum.cancelled)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    if order.status != OrderStatusEnum.cancelled:
        raise InvalidTransition("Order can no longer be cancelled", orderId=order.id, status=order.status.value)
    return order


def list_user_orders(db: Session, user: User) -> List[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.template))
        .filter(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.asc())
        .all()
    )


def list_user_purchases(db: Session, user: User) -> List[Template]:
    purchased = (
        select(OrderItem.template_id)
        .join(Order, Order.id == OrderItem.order_id)
        .where(Order.user_id == user.id, Order.status == OrderStatusEnum.completed)
    )
    return (
        db.query(Template)
        .filter(Template.id.in_(purchased))
        .order_by(Template.name.asc(), Template.id.asc())
        .all()
    )


def has_purchased(db: Session, user_id: str, template_id: str) -> bool:
    return (
        db.query(OrderItem.id)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(
            Order.user_id == user_id,
            Order.status == OrderStatusEnum.completed,
            OrderItem.template_id == template_id,
        )
        .first()
        is not None
    )
