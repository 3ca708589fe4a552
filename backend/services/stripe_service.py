"""
Stripe Service — card checkout via Stripe Checkout.

Handles:
    1. Checkout Session creation for an order (hosted payment page)
    2. Webhook signature verification (Stripe SDK)
    3. checkout.session.completed → order confirmation
"""
import json
import logging

import stripe
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db_models import Order
from domain.constants import (
    CHECKOUT_CONFIRMATION_PATH,
    CHECKOUT_SUCCESS_PATH,
    ORDER_ID_METADATA_KEY,
    STRIPE_CHECKOUT_COMPLETED,
    STRIPE_PAYMENT_FAILED,
)
from domain.errors import PaymentProviderError, WebhookSignatureError
from services import order_service
from services.async_executor import run_blocking
from utils.validators import as_dict, to_minor_units

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════
# Checkout Session
# ════════════════════════════════════════════════════════════════════


def _session_params(order: Order, email: str | None) -> dict:
    base = settings.public_url
    params = {
        "payment_method_types": ["card"],
        "mode": "payment",
        "line_items": [
            {
                "price_data": {
                    "currency": (order.currency or settings.currency).lower(),
                    "product_data": {
                        "name": f"Order {order.order_number}",
                        "description": f"Payment for order {order.order_number}",
                    },
                    "unit_amount": to_minor_units(order.total),
                },
                "quantity": 1,
            }
        ],
        # {CHECKOUT_SESSION_ID} is substituted by Stripe
        "success_url": (
            f"{base}{CHECKOUT_SUCCESS_PATH}"
            f"?session_id={{CHECKOUT_SESSION_ID}}&order_id={order.id}"
        ),
        "cancel_url": (
            f"{base}{CHECKOUT_CONFIRMATION_PATH}"
            f"?order={order.order_number}&status=cancelled"
        ),
        "metadata": {
            ORDER_ID_METADATA_KEY: order.id,
            "userId": order.user_id,
        },
    }
    if email:
        params["customer_email"] = email
    return params


async def create_checkout_session(order: Order, email: str | None) -> dict:
    """
    Create a Stripe Checkout Session for `order`.

    Returns:
        dict: {id, url}
    """
    if not settings.stripe_secret_key:
        raise PaymentProviderError("Stripe is not configured", details={"reason": "missing_secret"})

    try:
        session = await run_blocking(
            stripe.checkout.Session.create,
            api_key=settings.stripe_secret_key,
            **_session_params(order, email),
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe session error for order {order.order_number}: {e}")
        raise PaymentProviderError(details={"reason": "rejected"})

    logger.info(f"Stripe checkout session {session.id} created for order {order.order_number}")
    return {"id": session.id, "url": session.url}


# ════════════════════════════════════════════════════════════════════
# Webhook Verification
# ════════════════════════════════════════════════════════════════════


def construct_event(payload: bytes, signature: str | None) -> dict:
    """
    Verify the Stripe-Signature header over the raw body and parse the event.

    Raises:
        WebhookSignatureError: secret unset, header missing/invalid, stale
            timestamp, or body not JSON.
    """
    if not settings.stripe_webhook_secret:
        logger.error("STRIPE_WEBHOOK_SECRET not configured — rejecting webhook.")
        raise WebhookSignatureError("Webhook secret not configured")

    if not signature:
        raise WebhookSignatureError("No signatures found matching the expected signature for payload")

    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError:
        raise WebhookSignatureError("Invalid payload")

    try:
        stripe.WebhookSignature.verify_header(
            text,
            signature,
            settings.stripe_webhook_secret,
            settings.stripe_webhook_tolerance,
        )
    except stripe.SignatureVerificationError as e:
        raise WebhookSignatureError(e.user_message or str(e))

    try:
        event = json.loads(text)
    except ValueError:
        raise WebhookSignatureError("Invalid payload")
    if not isinstance(event, dict):
        raise WebhookSignatureError("Invalid payload")
    return event


# ════════════════════════════════════════════════════════════════════
# Webhook Processing
# ════════════════════════════════════════════════════════════════════


async def handle_event(event: dict, db: AsyncSession) -> dict:
    """
    Process a verified Stripe event.

        checkout.session.completed     → confirm order from metadata.orderId
        payment_intent.payment_failed  → log only
        anything else                  → ignored
    """
    event_type = event.get("type")
    obj = as_dict(as_dict(event.get("data")).get("object"))

    if event_type == STRIPE_CHECKOUT_COMPLETED:
        order_id = as_dict(obj.get("metadata")).get(ORDER_ID_METADATA_KEY)
        if not order_id:
            logger.warning(f"Stripe session {obj.get('id')} completed without orderId")
            return {"status": "ignored", "reason": "missing_order_id"}

        payment_id = obj.get("payment_intent") or obj.get("id")
        try:
            applied = await order_service.confirm_payment(
                db,
                order_id=str(order_id),
                payment_id=str(payment_id),
            )
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to confirm order {order_id} (Stripe {payment_id}): {e}")
            return {"status": "error", "orderId": str(order_id)}
        return {"status": "confirmed" if applied else "unchanged", "orderId": str(order_id)}

    if event_type == STRIPE_PAYMENT_FAILED:
        logger.info(f"Payment failed: {obj.get('id')}")
        return {"status": "logged", "reason": "payment_failed"}

    logger.debug(f"Stripe event ignored: {event_type}")
    return {"status": "ignored", "reason": f"unhandled_event_{event_type}"}
