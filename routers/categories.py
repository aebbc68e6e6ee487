from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from database import get_db
from errors import ValidationError
from models.user import User
from schemas import CategoryIn, CategoryOut, CategoryUpdate
from services import catalog
from token_module import require_admin

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return catalog.list_categories(db)


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(body: CategoryIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return catalog.create_category(db, **body.model_dump())


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: str,
    body: CategoryUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    changes = body.model_dump(exclude_unset=True)
    for required in ("name", "slug"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} cannot be null", field=required)
    return catalog.update_category(db, category_id, changes)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    catalog.delete_category(db, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
