import logging
import os
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

import stripe
from dotenv import load_dotenv

from errors import ExternalServiceError, ValidationError

load_dotenv()  # Φορτώνει τις μεταβλητές από το .env

logger = logging.getLogger(__name__)

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "sk_test_dummy_key_for_testing")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "usd")

stripe.api_key = STRIPE_SECRET_KEY


@dataclass
class PaymentIntentInfo:
    id: str
    status: str
    client_secret: Optional[str]
    order_id: Optional[str]


def to_minor_units(amount: Decimal) -> int:
    """Decimal ποσό -> ακέραια cents (π.χ. Decimal('25.00') -> 2500)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _field(obj: Any, key: str) -> Any:
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


def intent_info(intent: Any) -> PaymentIntentInfo:
    metadata = _field(intent, "metadata") or {}
    return PaymentIntentInfo(
        id=_field(intent, "id"),
        status=_field(intent, "status"),
        client_secret=_field(intent, "client_secret"),
        order_id=_field(metadata, "orderId"),
    )


def create_payment_intent(order_id: str, amount: Decimal, currency: str = STRIPE_CURRENCY) -> PaymentIntentInfo:
    """
    Δημιουργεί ένα payment intent στο Stripe για μια παραγγελία.
    amount: Decimal ποσό, στέλνεται σε minor units (cents)
    """
    try:
        intent = stripe.PaymentIntent.create(
            amount=to_minor_units(amount),
            currency=currency,
            metadata={"orderId": order_id},
        )
    except stripe.StripeError as e:
        logger.error("Stripe create_payment_intent error (order=%s): %s", order_id, e)
        raise ExternalServiceError(f"Error creating payment intent: {e.user_message or e}")
    info = intent_info(intent)
    logger.info("payment intent %s created for order %s", info.id, order_id)
    return info


def retrieve_payment_intent(payment_intent_id: str) -> PaymentIntentInfo:
    try:
        intent = stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.InvalidRequestError as e:
        raise ValidationError("Unknown payment intent", paymentIntentId=payment_intent_id, reason=str(e))
    except stripe.StripeError as e:
        logger.error("Stripe retrieve_payment_intent error (%s): %s", payment_intent_id, e)
        raise ExternalServiceError(f"Error verifying payment: {e.user_message or e}")
    return intent_info(intent)


def cancel_payment_intent(payment_intent_id: str) -> PaymentIntentInfo:
    try:
        intent = stripe.PaymentIntent.cancel(payment_intent_id)
    except stripe.StripeError as e:
        logger.error("Stripe cancel_payment_intent error (%s): %s", payment_intent_id, e)
        raise ExternalServiceError(f"Error cancelling payment: {e.user_message or e}")
    return intent_info(intent)


def construct_webhook_event(payload: bytes, sig_header: Optional[str]):
    try:
        return stripe.Webhook.construct_event(payload, sig_header, STRIPE_WEBHOOK_SECRET)
    except stripe.SignatureVerificationError:
        raise ValidationError("Invalid Stripe signature")
    except ValueError:
        raise ValidationError("Invalid webhook payload")
