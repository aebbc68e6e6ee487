import enum
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Enum, Numeric, ForeignKey
from sqlalchemy.orm import relationship

from database import Base
from models._ids import new_id


class OrderStatusEnum(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    cancelled = "cancelled"
    refunded = "refunded"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    stripe_payment_intent_id = Column(String, nullable=True, index=True)
    status = Column(
        Enum(OrderStatusEnum, name="order_status"),
        nullable=False,
        default=OrderStatusEnum.pending,
    )
    total_amount = Column(Numeric(10, 2), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.created_at",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    template_id = Column(String(36), ForeignKey("templates.id"), nullable=False, index=True)
    # τιμή τη στιγμή της αγοράς, ανεξάρτητη από μεταγενέστερες αλλαγές στο template
    price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    order = relationship("Order", back_populates="items")
    template = relationship("Template", back_populates="order_items")
