# routers/templates.py
import json
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from database import get_db
from errors import NotFoundError, ValidationError
from models.user import User
from schemas import TemplateBase, TemplateOut, TemplateUpdate
from services import catalog, uploads
from services.catalog import SortBy, TemplateFilters
from token_module import require_admin

log = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/templates", tags=["templates"])


# ---------------- Helpers ----------------
def _out(listings) -> List[TemplateOut]:
    return [TemplateOut.from_listing(item) for item in listings]


def _slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").strip().lower()).strip("-")
    return slug or "template"


def _parse_price(raw: str) -> Decimal:
    try:
        price = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid price", field="price", price=raw)
    if not price.is_finite() or price < 0:
        raise ValidationError("Invalid price", field="price", price=raw)
    return price.quantize(Decimal("0.01"))


def _parse_tags(raw: Optional[str]) -> List[str]:
    """Δέχεται JSON array (όπως το στέλνει το upload form)."""
    if not raw:
        return []
    try:
        tags = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("Tags must be a JSON array of strings", field="tags")
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValidationError("Tags must be a JSON array of strings", field="tags")
    # set-like, κρατάμε τη σειρά
    return list(dict.fromkeys(t.strip() for t in tags if t.strip()))


# ---------------- Listing ----------------
@router.get("", response_model=List[TemplateOut])
def list_templates(
    category_id: Optional[str] = Query(None, alias="categoryId"),
    search: Optional[str] = Query(None),
    min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
    sort_by: SortBy = Query(SortBy.newest, alias="sortBy"),
    db: Session = Depends(get_db),
):
    filters = TemplateFilters(
        category_id=category_id or None,
        search=search or None,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
    )
    return _out(catalog.list_templates(db, filters))


@router.get("/featured", response_model=List[TemplateOut])
def featured(db: Session = Depends(get_db)):
    return _out(catalog.featured_templates(db))


@router.get("/best-selling", response_model=List[TemplateOut])
def best_selling(db: Session = Depends(get_db)):
    return _out(catalog.best_selling_templates(db))


@router.get("/latest", response_model=List[TemplateOut])
def latest(db: Session = Depends(get_db)):
    return _out(catalog.latest_templates(db))


@router.get("/trending", response_model=List[TemplateOut])
def trending(db: Session = Depends(get_db)):
    return _out(catalog.trending_templates(db))


@router.get("/discount", response_model=List[TemplateOut])
def discount(db: Session = Depends(get_db)):
    return _out(catalog.discount_templates(db))


@router.get("/favorites", response_model=List[TemplateOut])
def favorites(db: Session = Depends(get_db)):
    return _out(catalog.favorite_templates(db))


@router.get("/category/{category_id}", response_model=List[TemplateOut])
def by_category(
    category_id: str,
    limit: int = Query(catalog.CURATED_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return _out(catalog.templates_by_category(db, category_id, limit))


@router.get("/slug/{slug}", response_model=TemplateOut)
def get_by_slug(slug: str, db: Session = Depends(get_db)):
    listing = catalog.get_template_by_slug(db, slug)
    if listing is None:
        raise NotFoundError("Template not found", slug=slug)
    return TemplateOut.from_listing(listing)


@router.get("/{template_id}", response_model=TemplateOut)
def get_template(template_id: str, db: Session = Depends(get_db)):
    listing = catalog.get_template(db, template_id)
    if listing is None:
        raise NotFoundError("Template not found", templateId=template_id)
    return TemplateOut.from_listing(listing)


# ---------------- Admin ----------------
@router.post("", response_model=TemplateBase, status_code=status.HTTP_201_CREATED)
def create_template(
    name: str = Form(...),
    description: str = Form(...),
    price: str = Form(...),
    slug: Optional[str] = Form(None),
    short_description: Optional[str] = Form(None, alias="shortDescription"),
    category_id: Optional[str] = Form(None, alias="categoryId"),
    tags: Optional[str] = Form(None),
    demo_url: Optional[str] = Form(None, alias="demoUrl"),
    is_featured: bool = Form(False, alias="isFeatured"),
    template_file: Optional[UploadFile] = File(None, alias="templateFile"),
    preview_images: Optional[List[UploadFile]] = File(None, alias="previewImages"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if template_file is None:
        raise ValidationError("Template file is required", field="templateFile")

    fields = dict(
        name=name.strip(),
        slug=_slugify(slug or name),
        description=description,
        short_description=short_description,
        price=_parse_price(price),
        category_id=category_id or None,
        tags=_parse_tags(tags),
        demo_url=demo_url or None,
        is_featured=is_featured,
    )

    archive, previews = uploads.save_template_files(template_file, preview_images or [])
    fields.update(
        download_url=archive.url,
        preview_images=[p.url for p in previews],
        file_size=uploads.human_size(archive.size),
    )
    try:
        template = catalog.create_template(db, author_id=admin.id, **fields)
    except Exception:
        uploads.remove_files([archive, *previews])
        raise
    log.info("[templates] %s uploaded by %s (%s)", template.slug, admin.id, template.file_size)
    return template


@router.patch("/{template_id}", response_model=TemplateBase)
def update_template(
    template_id: str,
    body: TemplateUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    changes = body.model_dump(exclude_unset=True)
    if "price" in changes:
        if changes["price"] is None:
            raise ValidationError("Invalid price", field="price")
        changes["price"] = changes["price"].quantize(Decimal("0.01"))
    for required in ("name", "slug", "description", "is_active", "is_featured", "tags"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} cannot be null", field=required)
    return catalog.update_template(db, template_id, changes)


@router.delete("/{template_id}", response_model=TemplateBase)
def delete_template(template_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return catalog.delete_template(db, template_id)
