"""
Checkout initiator — routes an order to the chosen payment provider.

The provider gets the order id in transaction metadata so its webhook (and,
for Paystack, the browser callback) can find the order again. No retries:
a provider failure surfaces as PaymentProviderError.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db_models import Order, Profile
from domain.constants import ORDER_ID_METADATA_KEY
from domain.enums import PaymentProvider, PaymentStatus
from domain.errors import ConflictError, NotFoundError, PaymentProviderError, ValidationError
from services import order_service, paystack_service, stripe_service
from utils.validators import to_minor_units

logger = logging.getLogger(__name__)

PAYSTACK_CALLBACK_PATH = "/api/payments/paystack/callback"


async def _customer_email(db: AsyncSession, user_id: str) -> str | None:
    res = await db.execute(select(Profile.email).where(Profile.id == user_id))
    return res.scalar_one_or_none()


async def _start_stripe(order: Order, email: str | None) -> dict:
    session = await stripe_service.create_checkout_session(order, email)
    return {"provider": PaymentProvider.STRIPE.value, "url": session["url"], "reference": session["id"]}


async def _start_paystack(db: AsyncSession, order: Order, email: str | None) -> dict:
    if not email:
        raise ValidationError("User email required", field="email")

    data = await paystack_service.initialize_transaction(
        email=email,
        amount=to_minor_units(order.total),
        currency=order.currency or settings.currency,
        callback_url=f"{settings.public_api_url}{PAYSTACK_CALLBACK_PATH}",
        metadata={
            ORDER_ID_METADATA_KEY: order.id,
            "custom_fields": [
                {
                    "display_name": "Order Number",
                    "variable_name": "order_number",
                    "value": order.order_number,
                }
            ],
        },
    )

    reference = data.get("reference")
    if reference:
        await order_service.set_payment_reference(db, order_id=order.id, reference=reference)

    return {
        "provider": PaymentProvider.PAYSTACK.value,
        "url": data.get("authorization_url"),
        "reference": reference,
    }


async def process_payment(
    db: AsyncSession,
    *,
    order_id: str,
    user_id: str,
    provider: PaymentProvider,
) -> dict:
    """
    Start payment for one of the shopper's orders.

    Returns:
        dict: {provider, url, reference}
    """
    order = await order_service.get_order(db, order_id=order_id, user_id=user_id)
    if not order:
        raise NotFoundError("Order", order_id)
    if order.payment_status == PaymentStatus.PAID.value:
        raise ConflictError(f"Order {order.order_number} is already paid")

    if order.payment_method != provider.value:
        order.payment_method = provider.value
        await db.commit()

    email = await _customer_email(db, user_id)

    if provider == PaymentProvider.STRIPE:
        result = await _start_stripe(order, email)
    else:
        result = await _start_paystack(db, order, email)

    if not result.get("url"):
        raise PaymentProviderError(details={"reason": "missing_redirect_url"})

    logger.info(f"Checkout started for order {order.order_number} via {result['provider']}")
    return result
