"""
Shopper authentication helpers.

Sign-in itself happens at the hosted identity provider. It issues HS256
access tokens signed with a secret shared with this backend:

    Authorization: Bearer <jwt>
    payload: {"sub": <profile id>, "aud": "authenticated", "email": ..., "exp": ..., "iat": ...}

This module only validates those tokens. issue_access_token() mints the
same shape for tests and local tooling.
"""
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional

import jwt
from fastapi import Header

from config import settings
from domain.errors import UnauthorizedError, DomainError

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _require_secret() -> str:
    if not settings.jwt_secret:
        raise DomainError("Server auth misconfigured (JWT secret missing).", status_code=500)
    return settings.jwt_secret


def _parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def decode_access_token(token: str) -> dict:
    secret = _require_secret()
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Access token expired.")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid access token.")


def issue_access_token(*, user_id: str, email: str | None = None) -> str:
    secret = _require_secret()
    now = _now_utc()
    exp = now.replace(microsecond=0) + timedelta(minutes=settings.jwt_access_ttl_minutes)
    payload = {
        "sub": user_id,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, secret, algorithm="HS256")


async def require_claims(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> dict:
    """Dependency: the verified token payload, or 401."""
    token = _parse_bearer_token(authorization)
    if not token:
        raise UnauthorizedError("Please sign in to complete your order")
    payload = decode_access_token(token)
    if not payload.get("sub"):
        raise UnauthorizedError("Invalid access token.")
    return payload

