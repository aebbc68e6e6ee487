from decimal import Decimal
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from models.order import Order, OrderItem, OrderStatusEnum
from models.template import Template
from models.user import User

RECENT_ORDERS_LIMIT = 10


def get_stats(db: Session) -> dict:
    """Marketplace totals; revenue counts completed orders only."""
    revenue = (
        db.query(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.status == OrderStatusEnum.completed)
        .scalar()
    )
    return {
        "total_revenue": Decimal(str(revenue or 0)).quantize(Decimal("0.01")),
        "total_orders": db.query(func.count(Order.id)).scalar() or 0,
        "total_templates": db.query(func.count(Template.id)).scalar() or 0,
        "total_users": db.query(func.count(User.id)).scalar() or 0,
    }


def recent_orders(db: Session, limit: int = RECENT_ORDERS_LIMIT) -> List[Order]:
    return (
        db.query(Order)
        .options(
            selectinload(Order.user),
            selectinload(Order.items).selectinload(OrderItem.template),
        )
        .order_by(Order.created_at.desc(), Order.id.asc())
        .limit(limit)
        .all()
    )
