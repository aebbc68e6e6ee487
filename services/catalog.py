# services/catalog.py
"""
Catalog store: categories and templates.

Every listing goes through `query_templates`, which joins a per-template
review aggregate so that `avg_rating` / `review_count` are always computed
live from the reviews table.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from errors import ConflictError, NotFoundError, ValidationError
from models.category import Category
from models.review import Review
from models.template import Template

logger = logging.getLogger(__name__)

CURATED_LIMIT = 6
TRENDING_WINDOW = timedelta(days=30)


class SortBy(str, enum.Enum):
    price_asc = "price_asc"
    price_desc = "price_desc"
    newest = "newest"
    popular = "popular"
    rating = "rating"


@dataclass
class TemplateFilters:
    category_id: Optional[str] = None
    search: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    sort_by: SortBy = SortBy.newest
    featured_only: bool = False
    created_after: Optional[datetime] = None


@dataclass
class TemplateListing:
    template: Template
    avg_rating: Optional[float]
    review_count: int


def _review_stats():
    return (
        select(
            Review.template_id.label("template_id"),
            func.avg(Review.rating).label("avg_rating"),
            func.count(Review.id).label("review_count"),
        )
        .group_by(Review.template_id)
        .subquery("review_stats")
    )


def _listing_query(db: Session):
    stats = _review_stats()
    query = (
        db.query(Template, stats.c.avg_rating, stats.c.review_count)
        .outerjoin(stats, stats.c.template_id == Template.id)
        .options(selectinload(Template.category))
    )
    return query, stats


def _to_listing(row) -> TemplateListing:
    template, avg_rating, review_count = row
    return TemplateListing(
        template=template,
        avg_rating=float(avg_rating) if avg_rating is not None else None,
        review_count=int(review_count or 0),
    )


def _order_by(sort_by: SortBy, stats) -> list:
    if sort_by == SortBy.price_asc:
        order = [Template.price.asc(), Template.name.asc()]
    elif sort_by == SortBy.price_desc:
        order = [Template.price.desc(), Template.name.asc()]
    elif sort_by == SortBy.popular:
        order = [Template.downloads.desc(), Template.created_at.desc()]
    elif sort_by == SortBy.rating:
        # rated πριν από unrated (portable αντί για NULLS LAST)
        order = [
            stats.c.avg_rating.is_(None),
            stats.c.avg_rating.desc(),
            stats.c.review_count.desc(),
        ]
    else:
        order = [Template.created_at.desc()]
    # total order
    order.append(Template.id.asc())
    return order


def _escape_like(value: str) -> str:
    # substring match: τα %, _ του χρήστη είναι κυριολεκτικά
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def query_templates(db: Session, filters: TemplateFilters, limit: Optional[int] = None) -> List[TemplateListing]:
    query, stats = _listing_query(db)
    query = query.filter(Template.is_active.is_(True))

    if filters.category_id:
        query = query.filter(Template.category_id == filters.category_id)
    if filters.search:
        pattern = f"%{_escape_like(filters.search)}%"
        query = query.filter(or_(
            Template.name.ilike(pattern, escape="\\"),
            Template.description.ilike(pattern, escape="\\"),
        ))
    if filters.min_price is not None:
        query = query.filter(Template.price >= filters.min_price)
    if filters.max_price is not None:
        query = query.filter(Template.price <= filters.max_price)
    if filters.featured_only:
        query = query.filter(Template.is_featured.is_(True))
    if filters.created_after is not None:
        query = query.filter(Template.created_at >= filters.created_after)

    query = query.order_by(*_order_by(filters.sort_by, stats))
    if limit is not None:
        query = query.limit(limit)
    return [_to_listing(row) for row in query.all()]


def list_templates(db: Session, filters: TemplateFilters) -> List[TemplateListing]:
    return query_templates(db, filters)


# ---------------- Curated views ----------------

def featured_templates(db: Session) -> List[TemplateListing]:
    return query_templates(db, TemplateFilters(featured_only=True), limit=CURATED_LIMIT)


def best_selling_templates(db: Session) -> List[TemplateListing]:
    return query_templates(db, TemplateFilters(sort_by=SortBy.popular), limit=CURATED_LIMIT)


def latest_templates(db: Session) -> List[TemplateListing]:
    return query_templates(db, TemplateFilters(sort_by=SortBy.newest), limit=CURATED_LIMIT)


def trending_templates(db: Session, now: Optional[datetime] = None) -> List[TemplateListing]:
    since = (now or datetime.utcnow()) - TRENDING_WINDOW
    return query_templates(
        db, TemplateFilters(sort_by=SortBy.popular, created_after=since), limit=CURATED_LIMIT
    )


def discount_templates(db: Session) -> List[TemplateListing]:
    return query_templates(db, TemplateFilters(sort_by=SortBy.price_asc), limit=CURATED_LIMIT)


def favorite_templates(db: Session) -> List[TemplateListing]:
    return query_templates(db, TemplateFilters(sort_by=SortBy.rating), limit=CURATED_LIMIT)


def templates_by_category(db: Session, category_id: str, limit: int = CURATED_LIMIT) -> List[TemplateListing]:
    return query_templates(db, TemplateFilters(category_id=category_id), limit=limit)


# ---------------- Single lookups ----------------

def get_template(db: Session, template_id: str) -> Optional[TemplateListing]:
    query, _ = _listing_query(db)
    row = query.filter(Template.id == template_id).first()
    return _to_listing(row) if row else None


def get_template_by_slug(db: Session, slug: str) -> Optional[TemplateListing]:
    query, _ = _listing_query(db)
    row = query.filter(Template.slug == slug).first()
    return _to_listing(row) if row else None


# ---------------- Templates (admin) ----------------

def _ensure_category(db: Session, category_id: Optional[str]) -> None:
    if category_id and db.get(Category, category_id) is None:
        raise ValidationError("Unknown category", field="categoryId", categoryId=category_id)


def _commit_slug(db: Session, model, slug: Optional[str], own_id: Optional[str], label: str) -> None:
    """Commit; an IntegrityError is a 409 only when another row really holds `slug`."""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if slug is not None:
            taken = db.query(model.id).filter(model.slug == slug)
            if own_id is not None:
                taken = taken.filter(model.id != own_id)
            if taken.first() is not None:
                raise ConflictError(f"{label} slug already exists", slug=slug)
        raise


def create_template(db: Session, author_id: str, **fields: Any) -> Template:
    _ensure_category(db, fields.get("category_id"))
    template = Template(author_id=author_id, **fields)
    db.add(template)
    _commit_slug(db, Template, fields.get("slug"), None, "Template")
    db.refresh(template)
    logger.info("template created id=%s slug=%s", template.id, template.slug)
    return template


def update_template(db: Session, template_id: str, changes: Dict[str, Any]) -> Template:
    template = db.get(Template, template_id)
    if template is None:
        raise NotFoundError("Template not found", templateId=template_id)
    if "category_id" in changes:
        _ensure_category(db, changes["category_id"])
    for key, value in changes.items():
        setattr(template, key, value)
    _commit_slug(db, Template, changes.get("slug"), template_id, "Template")
    db.refresh(template)
    return template


def delete_template(db: Session, template_id: str) -> Template:
    """Soft delete: order items and reviews keep pointing at the row."""
    return update_template(db, template_id, {"is_active": False})


# ---------------- Categories ----------------

def list_categories(db: Session) -> List[Category]:
    return db.query(Category).order_by(Category.name.asc()).all()


def create_category(db: Session, **fields: Any) -> Category:
    category = Category(**fields)
    db.add(category)
    _commit_slug(db, Category, fields.get("slug"), None, "Category")
    db.refresh(category)
    return category


def update_category(db: Session, category_id: str, changes: Dict[str, Any]) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found", categoryId=category_id)
    for key, value in changes.items():
        setattr(category, key, value)
    _commit_slug(db, Category, changes.get("slug"), category_id, "Category")
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: str) -> None:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found", categoryId=category_id)
    in_use = db.query(Template.id).filter(Template.category_id == category_id).count()
    if in_use:
        raise ConflictError("Category is still referenced by templates", categoryId=category_id, templates=in_use)
    db.delete(category)
    db.commit()
