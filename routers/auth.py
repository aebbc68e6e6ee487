from fastapi import APIRouter, Depends

from models.user import User
from schemas import UserOut
from token_module import get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/user", response_model=UserOut)
def current_user(user: User = Depends(get_current_user)):
    """Ο χρήστης όπως τον έχουμε μετά το upsert από το token."""
    return user
