import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from errors import DuplicateReview, PurchaseRequired, ValidationError
from models.review import Review
from models.user import User
from services.orders import has_purchased

logger = logging.getLogger(__name__)

MIN_RATING, MAX_RATING = 1, 5


def get_user_review(db: Session, user_id: str, template_id: str) -> Optional[Review]:
    return (
        db.query(Review)
        .filter(Review.user_id == user_id, Review.template_id == template_id)
        .first()
    )


def list_reviews(db: Session, template_id: str) -> List[Review]:
    return (
        db.query(Review)
        .options(selectinload(Review.user))
        .filter(Review.template_id == template_id)
        .order_by(Review.created_at.desc(), Review.id.asc())
        .all()
    )


def add_review(db: Session, user: User, template_id: str, rating: int, comment: Optional[str] = None) -> Review:
    if get_user_review(db, user.id, template_id) is not None:
        raise DuplicateReview("You have already reviewed this template", templateId=template_id)
    if not has_purchased(db, user.id, template_id):
        raise PurchaseRequired("You must purchase this template to review it", templateId=template_id)
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}", field="rating", rating=rating,
        )

    review = Review(user_id=user.id, template_id=template_id, rating=rating, comment=comment)
    db.add(review)
    try:
        db.commit()
    except IntegrityError:
        # ταυτόχρονο δεύτερο review: το unique constraint κερδίζει
        db.rollback()
        raise DuplicateReview("You have already reviewed this template", templateId=template_id)
    db.refresh(review)
    logger.info("review %s by %s on template %s (%d stars)", review.id, user.id, template_id, rating)
    return review
