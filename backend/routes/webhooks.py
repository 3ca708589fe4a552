"""
Provider webhooks.

    POST /api/webhooks/paystack   — x-paystack-signature (HMAC-SHA512)
    POST /api/webhooks/stripe     — Stripe-Signature (Stripe SDK)

The raw body is read before anything parses it: both signature schemes are
computed over the exact bytes the provider sent. Once the signature checks
out the provider always gets a bare 200 so it stops redelivering, whether or
not an order was found.
"""
import json
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from domain.constants import PAYSTACK_SIGNATURE_HEADER, STRIPE_SIGNATURE_HEADER
from domain.errors import WebhookSignatureError
from services import paystack_service, stripe_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/paystack")
async def paystack_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    body = await request.body()
    signature = request.headers.get(PAYSTACK_SIGNATURE_HEADER)

    if not paystack_service.verify_webhook_signature(body, signature):
        logger.warning("Paystack webhook rejected: invalid signature")
        return PlainTextResponse("Invalid signature", status_code=400)

    try:
        event = json.loads(body)
    except ValueError:
        logger.warning("Signed Paystack webhook with unparseable body acknowledged")
        return Response(status_code=200)

    if isinstance(event, dict):
        result = await paystack_service.handle_event(event, db)
        logger.info(f"Paystack webhook {event.get('event')}: {result['status']}")

    return Response(status_code=200)


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    body = await request.body()
    signature = request.headers.get(STRIPE_SIGNATURE_HEADER)

    try:
        event = stripe_service.construct_event(body, signature)
    except WebhookSignatureError as e:
        logger.warning(f"Stripe webhook rejected: {e}")
        return PlainTextResponse(f"Webhook Error: {e}", status_code=400)

    result = await stripe_service.handle_event(event, db)
    logger.info(f"Stripe webhook {event.get('type')}: {result['status']}")
    return Response(status_code=200)
