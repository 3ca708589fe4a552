"""
Shared FastAPI dependencies.

Routers import DB session, shopper/admin guards and pagination from here.
"""

from __future__ import annotations

from typing import TypedDict

from fastapi import Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import Profile
from domain.errors import PermissionDeniedError, UnauthorizedError
from middleware.auth import require_claims


class Pagination(TypedDict):
    limit: int
    offset: int


def pagination_params(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=100_000),
) -> Pagination:
    return {"limit": limit, "offset": offset}


async def current_profile(
    claims: dict = Depends(require_claims),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """
    The signed-in shopper's profile.

    Profiles are created on first use from the token's `sub` and `email`
    claims; blocked accounts are refused.
    """
    user_id = claims["sub"]
    q = await db.execute(select(Profile).where(Profile.id == user_id))
    profile = q.scalar_one_or_none()
    if not profile:
        email = claims.get("email")
        if not email:
            raise UnauthorizedError("Access token carries no email; sign in again.")
        profile = Profile(id=user_id, email=email, role="user")
        db.add(profile)
        await db.commit()
        return profile
    if profile.is_blocked:
        raise PermissionDeniedError("This account has been blocked.")
    return profile


async def require_admin(profile: Profile = Depends(current_profile)) -> Profile:
    """Require an admin profile (profiles.role == 'admin')."""
    if profile.role != "admin":
        raise PermissionDeniedError("Admin role required for this endpoint.")
    return profile
