"""
Pytest configuration and shared fixtures.

Provides an in-memory SQLite session, an httpx client bound to the FastAPI
app with get_db overridden, provider secrets, signed-webhook helpers and
sample profiles / orders.
"""
import hashlib
import hmac
import os
import time
from typing import AsyncGenerator

# Test-only environment, read by config.Settings at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-for-pytest-only")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings
from database import Base, get_db
from main import app
from middleware import rate_limit as rate_limit_module
from middleware.auth import issue_access_token

PAYSTACK_SECRET = "sk_test_paystack_secret"
STRIPE_WEBHOOK_SECRET = "whsec_test_secret"


# ── Settings ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def provider_settings(monkeypatch):
    """Provider secrets and public URLs used by every test."""
    monkeypatch.setattr(settings, "paystack_secret_key", PAYSTACK_SECRET)
    monkeypatch.setattr(settings, "paystack_base_url", "https://api.paystack.test")
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_stripe")
    monkeypatch.setattr(settings, "stripe_webhook_secret", STRIPE_WEBHOOK_SECRET)
    monkeypatch.setattr(settings, "app_url", "https://shop.test")
    monkeypatch.setattr(settings, "api_url", "https://api.shop.test")
    monkeypatch.setattr(settings, "jwt_secret", "test-jwt-secret-for-pytest-only")
    yield settings


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limit_module._limiter.reset()
    yield
    rate_limit_module._limiter.reset()


# ── Database Fixtures ────────────────────────────────────────────────


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx client against the FastAPI app, sharing the test DB session.

    Redirects are not followed so callback tests can inspect Location.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


# ── Webhook Signing Helpers ──────────────────────────────────────────


@pytest.fixture
def paystack_signature():
    """Sign a raw body the way Paystack does (HMAC-SHA512 hex)."""
    def _sign(body: bytes, secret: str = PAYSTACK_SECRET) -> str:
        return hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()
    return _sign


@pytest.fixture
def stripe_signature():
    """Build a Stripe-Signature header: t=<ts>,v1=<HMAC-SHA256 of '<ts>.<body>'>."""
    def _sign(body: bytes, secret: str = STRIPE_WEBHOOK_SECRET, timestamp: int | None = None) -> str:
        ts = int(time.time()) if timestamp is None else timestamp
        signed = f"{ts}.".encode("utf-8") + body
        digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return f"t={ts},v1={digest}"
    return _sign


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest.fixture
async def sample_profile(db_session: AsyncSession):
    """A regular shopper."""
    from db_models import Profile

    profile = Profile(id="user_1", email="shopper@example.com", full_name="Sam Shopper", role="user")
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest.fixture
async def admin_profile(db_session: AsyncSession):
    from db_models import Profile

    profile = Profile(id="admin_1", email="admin@example.com", full_name="Ada Admin", role="admin")
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest.fixture
def auth_headers():
    """Bearer headers for a profile id (+ optional email claim)."""
    def _headers(user_id: str, email: str | None = None) -> dict:
        token = issue_access_token(user_id=user_id, email=email)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def shipping_address() -> dict:
    return {
        "first_name": "Sam",
        "last_name": "Shopper",
        "address_line1": "1 Market Street",
        "city": "Leeds",
        "state": "West Yorkshire",
        "postal_code": "LS1 1AA",
        "country": "GB",
    }


@pytest.fixture
async def sample_order(db_session: AsyncSession, sample_profile, shipping_address):
    """A pending Paystack order with the id used in provider payloads."""
    from db_models import Order, OrderItem

    order = Order(
        id="order_1",
        order_number="ORD-20261019-ABC123",
        user_id=sample_profile.id,
        status="pending",
        payment_status="pending",
        payment_method="paystack",
        subtotal=24.0,
        shipping_cost=3.99,
        tax=0.0,
        discount=0.0,
        total=27.99,
        currency="GBP",
        shipping_address=shipping_address,
    )
    order.items.append(
        OrderItem(
            product_id="prod_1",
            quantity=2,
            unit_price=12.0,
            total_price=24.0,
            product_snapshot={"name": "1kg Denim Bundle", "slug": "1kg-denim-bundle"},
        )
    )
    db_session.add(order)
    await db_session.commit()
    return order
