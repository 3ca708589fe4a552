"""
Payment endpoints — checkout initiation and the Paystack browser callback.

    POST /payments/checkout                 — start hosted payment for an order
    GET  /api/payments/paystack/callback    — shopper returns from Paystack
"""
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from db_models import Profile
from deps import current_profile
from domain.responses import success_response
from middleware.rate_limit import rate_limit
from models import CheckoutRequest, CheckoutResponse
from services import checkout_service, paystack_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["payments"])


@router.post("/payments/checkout")
async def start_checkout(
    request: CheckoutRequest,
    profile: Profile = Depends(current_profile),
    db: AsyncSession = Depends(get_db),
    _rate=Depends(rate_limit(max_requests=settings.checkout_rate_limit, window_seconds=60, scope="checkout")),
):
    """
    Create a provider transaction for the order and return the hosted
    payment page URL the browser should be sent to.
    """
    result = await checkout_service.process_payment(
        db,
        order_id=request.order_id,
        user_id=profile.id,
        provider=request.provider,
    )
    return success_response(
        data=CheckoutResponse(**result).model_dump(mode="json")
    )


@router.get("/api/payments/paystack/callback")
async def paystack_callback(
    reference: str | None = Query(None),
    trxref: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Paystack redirects the shopper here after the hosted page.

    Re-verifies the transaction server-side and confirms the order in case
    the webhook has not arrived yet, then redirects (302) to the storefront.
    """
    target = await paystack_service.handle_callback(reference or trxref, db)
    return RedirectResponse(url=target, status_code=302)
