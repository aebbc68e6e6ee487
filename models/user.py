# models/user.py
from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from database import Base


class User(Base):
    """Mirror of an identity-provider account; upserted on every authenticated request."""

    __tablename__ = "users"

    # Το id είναι το `sub` claim του identity provider
    id = Column(String(64), primary_key=True)
    email = Column(String, unique=True, nullable=True, index=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    stripe_customer_id = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Template.author  <->  User.templates
    templates = relationship("Template", back_populates="author")

    # Order.user  <->  User.orders
    orders = relationship("Order", back_populates="user")

    # Review.user  <->  User.reviews
    reviews = relationship("Review", back_populates="user")
