"""
Order service — order storage, payment reconciliation writes, admin queries.

Every function takes the request's AsyncSession explicitly; nothing here
builds its own database client.

Payment confirmation is a single conditional UPDATE:

    UPDATE orders SET status='confirmed', payment_status='paid', ...
    WHERE id = :order_id AND payment_status != 'paid'

so a Paystack webhook and the Paystack browser callback (or a provider
redelivering the same event) can race freely: the first write wins and the
rest match zero rows.
"""

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db_models import Order, OrderItem, Profile
from domain.enums import OrderStatus, PaymentStatus
from domain.errors import NotFoundError, ValidationError
from models import CreateOrderRequest

logger = logging.getLogger(__name__)

# Admin status change -> timestamp column stamped alongside it
_STATUS_TIMESTAMPS = {
    OrderStatus.SHIPPED.value: "shipped_at",
    OrderStatus.DELIVERED.value: "delivered_at",
    OrderStatus.CANCELLED.value: "cancelled_at",
}


def generate_order_number(now: datetime | None = None) -> str:
    """Human-facing order number, e.g. ORD-20261019-4F2A9C."""
    now = now or datetime.utcnow()
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def _address_dict(address) -> dict | None:
    if address is None:
        return None
    return address.model_dump(by_alias=False)


# ════════════════════════════════════════════════════════════════════
# Shopper Orders
# ════════════════════════════════════════════════════════════════════


async def create_order(
    db: AsyncSession,
    *,
    user_id: str,
    data: CreateOrderRequest,
) -> Order:
    """
    Create a pending order plus its items.

    total = subtotal - discount + shipping_cost + tax (tax is 0: UK VAT is
    included in shelf prices).
    """
    if not data.items:
        raise ValidationError("Cart is empty", field="items")

    tax = 0.0
    total = round(data.subtotal - data.discount + data.shipping_cost + tax, 2)
    if total < 0:
        raise ValidationError("Order total cannot be negative", field="total")

    order = Order(
        order_number=generate_order_number(),
        user_id=user_id,
        status=OrderStatus.PENDING.value,
        payment_status=PaymentStatus.PENDING.value,
        payment_method=data.payment_method.value,
        subtotal=data.subtotal,
        shipping_cost=data.shipping_cost,
        tax=tax,
        discount=data.discount,
        total=total,
        currency=settings.currency,
        shipping_address=_address_dict(data.shipping_address),
        billing_address=_address_dict(data.billing_address),
        shipping_method=data.shipping_method_id,
        notes=data.notes,
        coupon_code=data.coupon_code,
        created_at=datetime.utcnow(),
    )

    for line in data.items:
        order.items.append(
            OrderItem(
                product_id=line.product_id,
                variant_id=line.variant_id,
                quantity=line.quantity,
                unit_price=line.price,
                total_price=round(line.price * line.quantity, 2),
                product_snapshot={
                    "name": line.name,
                    "slug": line.slug,
                    "price": line.price,
                    "image": line.image,
                    "size": line.size,
                    "color": line.color,
                },
            )
        )

    db.add(order)
    await db.flush()

    logger.info(
        f"Order {order.order_number} created for user {user_id} "
        f"({len(order.items)} items, total {order.total:.2f} {order.currency}, via {order.payment_method})"
    )
    return order


async def get_order(db: AsyncSession, *, order_id: str, user_id: str) -> Order | None:
    """Get an order by id, only if it belongs to `user_id`."""
    res = await db.execute(
        select(Order).where(Order.id == order_id, Order.user_id == user_id)
    )
    return res.scalar_one_or_none()


async def get_order_by_number(db: AsyncSession, *, order_number: str, user_id: str) -> Order | None:
    res = await db.execute(
        select(Order).where(Order.order_number == order_number, Order.user_id == user_id)
    )
    return res.scalar_one_or_none()


async def list_user_orders(db: AsyncSession, *, user_id: str) -> list[Order]:
    res = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
    )
    return list(res.scalars().all())


# ════════════════════════════════════════════════════════════════════
# Payment Reconciliation
# ════════════════════════════════════════════════════════════════════


async def confirm_payment(
    db: AsyncSession,
    *,
    order_id: str,
    payment_id: str,
    payment_reference: str | None = None,
) -> bool:
    """
    Mark an order confirmed + paid after a provider reports success.

    Returns True if this call performed the transition, False if the order
    does not exist or was already paid (redelivery / webhook-callback race).
    """
    now = datetime.utcnow()
    values = {
        "status": OrderStatus.CONFIRMED.value,
        "payment_status": PaymentStatus.PAID.value,
        "payment_id": payment_id,
        "paid_at": now,
        "updated_at": now,
    }
    if payment_reference:
        values["payment_intent_id"] = payment_reference

    result = await db.execute(
        update(Order)
        .where(
            Order.id == order_id,
            Order.payment_status != PaymentStatus.PAID.value,
        )
        .values(**values)
    )
    await db.commit()

    applied = result.rowcount > 0
    if applied:
        logger.info(f"Order {order_id} marked as paid (payment {payment_id})")
    else:
        logger.info(f"Order {order_id} not updated: unknown or already paid (payment {payment_id})")
    return applied


async def set_payment_reference(db: AsyncSession, *, order_id: str, reference: str) -> None:
    """Remember the provider reference issued at checkout for later verification."""
    await db.execute(
        update(Order)
        .where(Order.id == order_id)
        .values(payment_intent_id=reference, updated_at=datetime.utcnow())
    )
    await db.commit()


# ════════════════════════════════════════════════════════════════════
# Admin
# ════════════════════════════════════════════════════════════════════


async def update_order_status(
    db: AsyncSession,
    *,
    order_id: str,
    status: str,
    tracking_number: str | None = None,
) -> Order:
    """Admin status change; stamps shipped_at / delivered_at / cancelled_at."""
    valid = {s.value for s in OrderStatus}
    if status not in valid:
        raise ValidationError(f"Unknown order status '{status}'", field="status")

    res = await db.execute(select(Order).where(Order.id == order_id))
    order = res.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order", order_id)

    now = datetime.utcnow()
    order.status = status
    stamp = _STATUS_TIMESTAMPS.get(status)
    if stamp:
        setattr(order, stamp, now)
    if tracking_number is not None:
        order.tracking_number = tracking_number
    order.updated_at = now

    await db.commit()
    logger.info(f"Order {order.order_number} status -> {status}")
    return order


async def list_orders(
    db: AsyncSession,
    *,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Order], int]:
    """All orders (newest first) plus the total count for pagination."""
    query = select(Order)
    count_query = select(func.count(Order.id))
    if status:
        query = query.where(Order.status == status)
        count_query = count_query.where(Order.status == status)

    res = await db.execute(
        query.order_by(Order.created_at.desc()).limit(limit).offset(offset)
    )
    total = (await db.execute(count_query)).scalar_one()
    return list(res.scalars().all()), total


async def dashboard_stats(db: AsyncSession, *, days: int = 30) -> dict:
    """Revenue and order aggregates for the admin dashboard."""
    paid = Order.payment_status == PaymentStatus.PAID.value

    revenue, paid_count, customers = (
        await db.execute(
            select(
                func.coalesce(func.sum(Order.total), 0.0),
                func.count(Order.id),
                func.count(func.distinct(Order.user_id)),
            ).where(paid)
        )
    ).one()
    total_orders = (await db.execute(select(func.count(Order.id)))).scalar_one()

    since = datetime.utcnow() - timedelta(days=days)
    day = func.date(Order.paid_at)
    daily_rows = (
        await db.execute(
            select(day, func.sum(Order.total), func.count(Order.id))
            .where(paid, Order.paid_at >= since)
            .group_by(day)
            .order_by(day)
        )
    ).all()

    recent_rows = (
        await db.execute(
            select(Order, Profile.email, Profile.full_name)
            .join(Profile, Profile.id == Order.user_id)
            .order_by(Order.created_at.desc())
            .limit(5)
        )
    ).all()

    return {
        "stats": {
            "total_revenue": round(float(revenue), 2),
            "total_orders": total_orders,
            "paid_orders": paid_count,
            "avg_order_value": round(float(revenue) / paid_count, 2) if paid_count else 0.0,
            "active_customers": customers,
        },
        "revenue_chart": [
            {"date": str(d), "revenue": round(float(r or 0), 2), "orders": c}
            for d, r, c in daily_rows
        ],
        "recent_orders": [
            {
                "id": o.id,
                "order_number": o.order_number,
                "total": o.total,
                "status": o.status,
                "payment_status": o.payment_status,
                "created_at": o.created_at.isoformat() if o.created_at else None,
                "user": {"email": email, "full_name": full_name},
            }
            for o, email, full_name in recent_rows
        ],
    }


# ════════════════════════════════════════════════════════════════════
# Serialization
# ════════════════════════════════════════════════════════════════════


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def order_to_dict(order: Order, *, include_items: bool = True) -> dict:
    data = {
        "id": order.id,
        "order_number": order.order_number,
        "status": order.status,
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "payment_id": order.payment_id,
        "subtotal": order.subtotal,
        "shipping_cost": order.shipping_cost,
        "tax": order.tax,
        "discount": order.discount,
        "total": order.total,
        "currency": order.currency,
        "shipping_address": order.shipping_address,
        "billing_address": order.billing_address,
        "shipping_method": order.shipping_method,
        "tracking_number": order.tracking_number,
        "coupon_code": order.coupon_code,
        "notes": order.notes,
        "paid_at": _iso(order.paid_at),
        "shipped_at": _iso(order.shipped_at),
        "delivered_at": _iso(order.delivered_at),
        "cancelled_at": _iso(order.cancelled_at),
        "created_at": _iso(order.created_at),
    }
    if include_items:
        data["items"] = [
            {
                "id": i.id,
                "quantity": i.quantity,
                "unit_price": i.unit_price,
                "total_price": i.total_price,
                "product_snapshot": i.product_snapshot,
            }
            for i in order.items
        ]
    return data
