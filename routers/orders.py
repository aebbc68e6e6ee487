from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas import OrderOut, TemplateBase
from services import orders, payments
from token_module import get_current_user

router = APIRouter(tags=["orders"])


@router.get("/my-purchases", response_model=List[TemplateBase])
def my_purchases(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return orders.list_user_purchases(db, user)


@router.get("/my-orders", response_model=List[OrderOut])
def my_orders(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return orders.list_user_orders(db, user)


@router.get("/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return orders.get_user_order(db, user, order_id)


@router.post("/orders/{order_id}/cancel", response_model=OrderOut)
def cancel_order(order_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return payments.cancel_checkout(db, user, order_id)
