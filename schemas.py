from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.order import OrderStatusEnum


class ApiModel(BaseModel):
    """snake_case στην Python, camelCase στο JSON (όπως το περιμένει το frontend)."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ----------------- Users -----------------

class UserOut(ApiModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[datetime] = None


class ReviewerOut(ApiModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


# ----------------- Categories -----------------

class CategoryIn(ApiModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    icon: Optional[str] = None
    description: Optional[str] = None


class CategoryUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    icon: Optional[str] = None
    description: Optional[str] = None


class CategoryOut(ApiModel):
    id: str
    name: str
    slug: str
    icon: Optional[str] = None
    description: Optional[str] = None


# ----------------- Templates -----------------

class TemplateBase(ApiModel):
    id: str
    name: str
    slug: str
    description: str
    short_description: Optional[str] = None
    price: Decimal
    category_id: Optional[str] = None
    author_id: Optional[str] = None
    preview_images: List[str] = []
    tags: List[str] = []
    demo_url: Optional[str] = None
    download_url: Optional[str] = None
    file_size: Optional[str] = None
    is_active: bool = True
    is_featured: bool = False
    downloads: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TemplateOut(TemplateBase):
    category: Optional[CategoryOut] = None
    # None = "χωρίς αξιολογήσεις", όχι 0
    avg_rating: Optional[float] = None
    review_count: int = 0

    @classmethod
    def from_listing(cls, listing) -> "TemplateOut":
        out = cls.model_validate(listing.template)
        return out.model_copy(update={
            "avg_rating": listing.avg_rating,
            "review_count": listing.review_count,
        })


class TemplateUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    short_description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    category_id: Optional[str] = None
    tags: Optional[List[str]] = None
    demo_url: Optional[str] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None


# ----------------- Orders -----------------

class OrderItemOut(ApiModel):
    id: str
    template_id: str
    price: Decimal
    created_at: Optional[datetime] = None
    template: Optional[TemplateBase] = None


class OrderOut(ApiModel):
    id: str
    user_id: str
    stripe_payment_intent_id: Optional[str] = None
    status: OrderStatusEnum
    total_amount: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = []


class AdminOrderOut(OrderOut):
    user: Optional[UserOut] = None


# ----------------- Checkout -----------------

class CreatePaymentIntentIn(ApiModel):
    template_ids: List[str]


class CreatePaymentIntentOut(ApiModel):
    client_secret: Optional[str] = None
    order_id: str


class ConfirmPaymentIn(ApiModel):
    order_id: str
    payment_intent_id: str


class ConfirmPaymentOut(ApiModel):
    success: bool
    message: str
    status: OrderStatusEnum


# ----------------- Reviews -----------------

class ReviewIn(ApiModel):
    # τα όρια 1-5 ελέγχονται στο services/reviews.py, μετά τους ελέγχους αγοράς
    rating: int
    comment: Optional[str] = None


class ReviewOut(ApiModel):
    id: str
    user_id: str
    template_id: str
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    user: Optional[ReviewerOut] = None


# ----------------- Admin -----------------

class StatsOut(ApiModel):
    total_revenue: Decimal
    total_orders: int
    total_templates: int
    total_users: int
