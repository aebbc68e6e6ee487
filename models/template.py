from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Numeric, ForeignKey, JSON
from sqlalchemy.orm import relationship

from database import Base
from models._ids import new_id


class Template(Base):
    __tablename__ = "templates"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False)
    short_description = Column(String, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)

    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)
    author_id = Column(String(64), ForeignKey("users.id"), nullable=True)

    preview_images = Column(JSON, nullable=False, default=list)  # ordered list of URLs
    tags = Column(JSON, nullable=False, default=list)

    demo_url = Column(String, nullable=True)
    download_url = Column(String, nullable=True)
    file_size = Column(String, nullable=True)  # π.χ. "2.35 MB"

    is_active = Column(Boolean, default=True, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)
    downloads = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = relationship("Category", back_populates="templates")
    author = relationship("User", back_populates="templates")
    order_items = relationship("OrderItem", back_populates="template")
    reviews = relationship("Review", back_populates="template")
