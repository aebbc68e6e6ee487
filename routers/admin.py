from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas import AdminOrderOut, StatsOut
from services import admin
from token_module import require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=StatsOut)
def stats(db: Session = Depends(get_db), user: User = Depends(require_admin)):
    return admin.get_stats(db)


@router.get("/recent-orders", response_model=List[AdminOrderOut])
def recent_orders(
    limit: int = Query(admin.RECENT_ORDERS_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    return admin.recent_orders(db, limit)
