"""
SQLAlchemy ORM models for the Kilo Thrift storefront.

Tables:
    profiles     — shopper / admin accounts (identity lives with the auth provider)
    orders       — customer purchases tracked through fulfilment and payment
    order_items  — priced cart lines frozen at checkout time
"""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, Text, JSON, ForeignKey, Index,
)
from sqlalchemy.orm import relationship

from database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    """Account profile keyed by the identity provider's user id (JWT `sub`)."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default="user")  # "user" | "admin"
    is_blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    orders = relationship("Order", back_populates="user", lazy="select")


class Order(Base):
    """
    A customer purchase.

    Lifecycle:
        1. Checkout creates the row (status=pending, payment_status=pending)
        2. Checkout initiator asks Stripe/Paystack for a hosted payment page
        3. Provider webhook (or the Paystack callback) confirms payment
           -> status=confirmed, payment_status=paid, payment_id, paid_at
        4. Admin moves it through processing -> shipped -> delivered
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_status = Column(String(20), nullable=False, default="pending", index=True)
    payment_method = Column(String(20), nullable=False)  # "stripe" | "paystack"
    payment_id = Column(String(100), nullable=True)  # provider transaction reference
    payment_intent_id = Column(String(100), nullable=True)  # Paystack reference

    # Money (major units, e.g. pounds)
    subtotal = Column(Float, nullable=False, default=0.0)
    shipping_cost = Column(Float, nullable=False, default=0.0)
    tax = Column(Float, nullable=False, default=0.0)
    discount = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False, default=0.0)
    currency = Column(String(3), nullable=False, default="GBP")

    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=True)
    shipping_method = Column(String(50), nullable=True)
    tracking_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    coupon_code = Column(String(50), nullable=True)

    # Timestamps
    paid_at = Column(DateTime, nullable=True)
    shipped_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("Profile", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        # For shopper order history: filter by user_id, order by created_at DESC
        Index("ix_orders_user_created", "user_id", "created_at"),
        # For dashboard revenue: paid orders by paid_at
        Index("ix_orders_payment_paid", "payment_status", "paid_at"),
    )


class OrderItem(Base):
    """One cart line. product_snapshot keeps name/slug/size as they were at checkout."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(String(36), nullable=False, index=True)
    variant_id = Column(String(36), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False, default=0.0)
    total_price = Column(Float, nullable=False, default=0.0)
    product_snapshot = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="items")
