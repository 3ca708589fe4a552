"""
Paystack Service

Handles:
    1. Transaction initialization (hosted payment page for an order)
    2. Server-side transaction verification
    3. Webhook signature verification (HMAC-SHA512 of the raw body)
    4. charge.success webhook → order confirmation
    5. Browser callback after the hosted page → verify + confirm + redirect

The webhook and the callback both confirm the same order. Whichever lands
first performs the write; the other is a no-op (see order_service).
"""
import hashlib
import hmac
import logging
from typing import Optional
from urllib.parse import quote, urlencode

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from domain.constants import (
    CHECKOUT_CONFIRMATION_PATH,
    CHECKOUT_SUCCESS_PATH,
    ORDER_ID_METADATA_KEY,
    PAYSTACK_CHARGE_SUCCESS,
)
from domain.errors import PaymentProviderError
from services import order_service
from utils.validators import as_dict, is_valid_reference, normalize_metadata

logger = logging.getLogger(__name__)

# Overridden in tests with httpx.MockTransport
_transport: Optional[httpx.AsyncBaseTransport] = None


# ════════════════════════════════════════════════════════════════════
# REST Client
# ════════════════════════════════════════════════════════════════════


def _get_headers() -> dict:
    """Build Paystack authentication headers."""
    if not settings.paystack_secret_key:
        raise PaymentProviderError(
            "Paystack is not configured",
            details={"reason": "missing_secret"},
        )
    return {
        "Authorization": f"Bearer {settings.paystack_secret_key}",
        "Content-Type": "application/json",
    }


async def _request(method: str, path: str, payload: dict | None = None) -> dict:
    """
    Call the Paystack API and return its `data` object.

    Paystack answers {"status": bool, "message": str, "data": {...}}; a false
    status (any HTTP code) is a rejection, a transport error is unreachability.
    """
    headers = _get_headers()
    try:
        async with httpx.AsyncClient(
            base_url=settings.paystack_base_url,
            timeout=settings.paystack_timeout_seconds,
            transport=_transport,
        ) as client:
            response = await client.request(method, path, headers=headers, json=payload)
    except httpx.HTTPError as e:
        logger.error(f"Paystack {method} {path} failed: {e}")
        raise PaymentProviderError(details={"reason": "unreachable"})

    try:
        body = response.json()
    except ValueError:
        logger.error(f"Paystack {method} {path} returned non-JSON (HTTP {response.status_code})")
        raise PaymentProviderError(details={"reason": "bad_response"})

    if not isinstance(body, dict):
        logger.error(f"Paystack {method} {path} returned a non-object body")
        raise PaymentProviderError(details={"reason": "bad_response"})

    if not body.get("status"):
        message = body.get("message") or "Paystack rejected the request"
        logger.warning(f"Paystack {method} {path} rejected: {message}")
        raise PaymentProviderError(message, details={"reason": "rejected"})

    return as_dict(body.get("data"))


async def initialize_transaction(
    *,
    email: str,
    amount: int,
    currency: str,
    callback_url: str,
    metadata: dict,
    reference: str | None = None,
) -> dict:
    """
    Create a Paystack transaction.

    Args:
        amount: minor units (pence / kobo)

    Returns:
        dict: {authorization_url, access_code, reference}
    """
    payload = {
        "email": email,
        "amount": amount,
        "currency": currency,
        "callback_url": callback_url,
        "metadata": metadata,
    }
    if reference:
        payload["reference"] = reference
    return await _request("POST", "/transaction/initialize", payload)


async def verify_transaction(reference: str) -> dict:
    """Fetch the authoritative transaction state for `reference`."""
    return await _request("GET", f"/transaction/verify/{quote(reference, safe='')}")


# ════════════════════════════════════════════════════════════════════
# Webhook Verification
# ════════════════════════════════════════════════════════════════════


def verify_webhook_signature(payload: bytes, signature: str | None) -> bool:
    """
    Verify a Paystack webhook signature.

    Paystack signs the raw body with HMAC-SHA512 keyed by the secret key and
    sends the hex digest in x-paystack-signature. Fails closed when the
    secret is not configured.
    """
    if not settings.paystack_secret_key:
        logger.error(
            "PAYSTACK_SECRET_KEY not configured — rejecting webhook. "
            "Set PAYSTACK_SECRET_KEY in .env to accept Paystack webhooks."
        )
        return False

    if not signature:
        logger.warning("Paystack webhook received without signature header")
        return False

    expected = hmac.new(
        settings.paystack_secret_key.encode("utf-8"),
        payload,
        hashlib.sha512,
    ).hexdigest()

    return hmac.compare_digest(expected, signature)


# ════════════════════════════════════════════════════════════════════
# Webhook Processing
# ════════════════════════════════════════════════════════════════════


async def _confirm(db: AsyncSession, order_id: str, payment_id: str, reference: str | None) -> str:
    """Run the confirmation write; a store failure is logged, not raised."""
    try:
        applied = await order_service.confirm_payment(
            db,
            order_id=order_id,
            payment_id=payment_id,
            payment_reference=reference,
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to confirm order {order_id} (Paystack {payment_id}): {e}")
        return "error"
    return "confirmed" if applied else "unchanged"


async def handle_event(event: dict, db: AsyncSession) -> dict:
    """
    Process a verified Paystack webhook event.

        charge.success with metadata.orderId → confirm order
        charge.success without orderId       → ignored
        anything else                        → logged, ignored
    """
    event_type = event.get("event")
    data = as_dict(event.get("data"))

    if event_type != PAYSTACK_CHARGE_SUCCESS:
        logger.info(f"Paystack event ignored: {event_type}")
        return {"status": "ignored", "reason": f"unhandled_event_{event_type}"}

    metadata = normalize_metadata(data.get("metadata"))
    order_id = metadata.get(ORDER_ID_METADATA_KEY)
    reference = data.get("reference")

    if not order_id:
        logger.warning(f"Paystack charge.success without orderId (reference={reference})")
        return {"status": "ignored", "reason": "missing_order_id"}

    result = await _confirm(db, str(order_id), str(data.get("id")), reference)
    return {"status": result, "orderId": str(order_id)}


# ════════════════════════════════════════════════════════════════════
# Browser Callback
# ════════════════════════════════════════════════════════════════════


def _home_url() -> str:
    return f"{settings.public_url}/"


def _success_url(order_id: str) -> str:
    return f"{settings.public_url}{CHECKOUT_SUCCESS_PATH}?{urlencode({'order_id': order_id})}"


def _failed_url() -> str:
    return f"{settings.public_url}{CHECKOUT_CONFIRMATION_PATH}?status=failed"


async def handle_callback(reference: str | None, db: AsyncSession) -> str:
    """
    Resolve the shopper's return from the hosted page to a redirect URL.

    Verification is repeated server-side; the query string alone is never
    trusted. Provider unreachable → home; not successful → failed page.
    """
    if not reference:
        return _home_url()

    if not is_valid_reference(reference):
        logger.warning("Paystack callback with malformed reference")
        return _failed_url()

    try:
        data = await verify_transaction(reference)
    except PaymentProviderError as e:
        if e.details.get("reason") == "rejected":
            return _failed_url()
        logger.error(f"Paystack callback verification failed for {reference}: {e.message}")
        return _home_url()

    if data.get("status") != "success":
        logger.info(f"Paystack transaction {reference} not successful: {data.get('status')}")
        return _failed_url()

    metadata = normalize_metadata(data.get("metadata"))
    order_id = metadata.get(ORDER_ID_METADATA_KEY)
    if not order_id:
        logger.warning(f"Verified Paystack transaction {reference} carries no orderId")
        return _failed_url()

    await _confirm(db, str(order_id), str(data.get("id")), data.get("reference") or reference)
    return _success_url(str(order_id))
