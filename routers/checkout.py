# routers/checkout.py
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas import ConfirmPaymentIn, ConfirmPaymentOut, CreatePaymentIntentIn, CreatePaymentIntentOut
from services import payments, stripe_client
from token_module import get_current_user

log = logging.getLogger("uvicorn.error")

router = APIRouter(tags=["checkout"])


@router.post("/create-payment-intent", response_model=CreatePaymentIntentOut)
def create_payment_intent(
    body: CreatePaymentIntentIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return payments.start_checkout(db, user, body.template_ids)


@router.post("/confirm-payment", response_model=ConfirmPaymentOut)
def confirm_payment(
    body: ConfirmPaymentIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    order = payments.confirm_payment(db, user, body.order_id, body.payment_intent_id)
    return {"success": True, "message": "Payment confirmed", "status": order.status}


@router.post("/webhooks/stripe")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    event = stripe_client.construct_webhook_event(payload, request.headers.get("stripe-signature"))
    result = payments.handle_webhook_event(db, event)
    log.info("[webhooks] %s -> %s", event["type"], result)
    return {"status": result}
