from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas import ReviewIn, ReviewOut
from services import reviews
from token_module import get_current_user

router = APIRouter(prefix="/templates/{template_id}/reviews", tags=["reviews"])


@router.get("", response_model=List[ReviewOut])
def list_reviews(template_id: str, db: Session = Depends(get_db)):
    return reviews.list_reviews(db, template_id)


@router.post("", response_model=ReviewOut, status_code=status.HTTP_201_CREATED)
def add_review(
    template_id: str,
    body: ReviewIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return reviews.add_review(db, user, template_id, body.rating, body.comment)
