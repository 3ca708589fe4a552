"""
Unit tests for order_service.

Tests: order creation totals, the conditional payment confirmation, admin
status changes and dashboard aggregates.
"""
import re
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from db_models import Order, Profile
from domain.errors import NotFoundError, ValidationError
from models import CreateOrderRequest
from services import order_service


def _order_request(**overrides) -> CreateOrderRequest:
    data = {
        "shippingAddress": {
            "firstName": "Sam",
            "lastName": "Shopper",
            "addressLine1": "1 Market Street",
            "city": "Leeds",
            "postalCode": "LS1 1AA",
            "country": "GB",
        },
        "shippingMethodId": "royal-mail-tracked",
        "shippingCost": 3.99,
        "paymentMethod": "stripe",
        "items": [
            {"productId": "prod_1", "name": "1kg Denim Bundle", "slug": "1kg-denim-bundle", "price": 12.0, "quantity": 2},
            {"productId": "prod_2", "name": "Knitwear Lot", "slug": "knitwear-lot", "price": 8.5, "quantity": 1},
        ],
        "subtotal": 32.5,
        "discount": 5.0,
        "couponCode": "WELCOME5",
    }
    data.update(overrides)
    return CreateOrderRequest.model_validate(data)


class TestCreateOrder:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_totals_and_items(self, db_session, sample_profile):
        order = await order_service.create_order(db_session, user_id="user_1", data=_order_request())
        await db_session.commit()

        assert order.total == 31.49  # 32.5 - 5 + 3.99
        assert order.tax == 0.0
        assert order.status == "pending"
        assert order.payment_status == "pending"
        assert order.payment_method == "stripe"
        assert order.currency == "GBP"
        assert order.coupon_code == "WELCOME5"
        assert order.shipping_address["postal_code"] == "LS1 1AA"
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", order.order_number)

        assert len(order.items) == 2
        assert order.items[0].total_price == 24.0
        assert order.items[0].product_snapshot["slug"] == "1kg-denim-bundle"

    @pytest.mark.unit
    def test_discount_above_subtotal_rejected(self):
        with pytest.raises(ValueError):
            _order_request(discount=40.0)

    @pytest.mark.unit
    def test_checkout_form_has_no_email_field(self):
        """The customer email comes from the profile, not the form."""
        request = _order_request(email="typed@example.com")
        assert "email" not in CreateOrderRequest.model_fields
        assert not hasattr(request, "email")

    @pytest.mark.unit
    def test_empty_cart_rejected(self):
        with pytest.raises(ValueError):
            _order_request(items=[])


class TestConfirmPayment:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_first_confirmation_applies(self, db_session, sample_order):
        applied = await order_service.confirm_payment(
            db_session, order_id="order_1", payment_id="12345", payment_reference="ref_abc",
        )
        await db_session.refresh(sample_order)

        assert applied is True
        assert sample_order.status == "confirmed"
        assert sample_order.payment_status == "paid"
        assert sample_order.payment_id == "12345"
        assert sample_order.payment_intent_id == "ref_abc"
        assert sample_order.paid_at is not None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_second_confirmation_is_noop(self, db_session, sample_order):
        await order_service.confirm_payment(db_session, order_id="order_1", payment_id="first")
        await db_session.refresh(sample_order)
        paid_at = sample_order.paid_at

        applied = await order_service.confirm_payment(db_session, order_id="order_1", payment_id="second")
        await db_session.refresh(sample_order)

        assert applied is False
        assert sample_order.payment_id == "first"
        assert sample_order.paid_at == paid_at

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_order(self, db_session):
        assert await order_service.confirm_payment(db_session, order_id="nope", payment_id="1") is False


class TestUpdateOrderStatus:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_shipped_stamps_timestamp_and_tracking(self, db_session, sample_order):
        order = await order_service.update_order_status(
            db_session, order_id="order_1", status="shipped", tracking_number="RM123456789GB",
        )

        assert order.status == "shipped"
        assert order.shipped_at is not None
        assert order.tracking_number == "RM123456789GB"
        assert order.delivered_at is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_status(self, db_session, sample_order):
        with pytest.raises(ValidationError):
            await order_service.update_order_status(db_session, order_id="order_1", status="lost")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            await order_service.update_order_status(db_session, order_id="missing", status="shipped")


class TestAdminQueries:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_orders_filters_and_counts(self, db_session, sample_order):
        for i in range(3):
            db_session.add(Order(
                id=f"order_x{i}",
                order_number=f"ORD-20261019-X0000{i}",
                user_id="user_1",
                status="shipped" if i == 0 else "pending",
                payment_method="stripe",
                shipping_address={},
                subtotal=10.0,
                total=10.0,
                created_at=datetime.utcnow() + timedelta(minutes=i + 1),
            ))
        await db_session.commit()

        orders, total = await order_service.list_orders(db_session, limit=2, offset=0)
        assert total == 4
        assert len(orders) == 2
        assert orders[0].id == "order_x2"

        shipped, shipped_total = await order_service.list_orders(db_session, status="shipped")
        assert shipped_total == 1
        assert shipped[0].id == "order_x0"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dashboard_stats(self, db_session, sample_order):
        db_session.add(Profile(id="user_2", email="second@example.com", full_name="Second"))
        db_session.add(Order(
            id="order_2",
            order_number="ORD-20261019-DEF456",
            user_id="user_2",
            payment_method="paystack",
            shipping_address={},
            subtotal=12.01,
            total=12.01,
        ))
        await db_session.commit()
        await order_service.confirm_payment(db_session, order_id="order_1", payment_id="p1")
        await order_service.confirm_payment(db_session, order_id="order_2", payment_id="p2")

        data = await order_service.dashboard_stats(db_session, days=30)

        stats = data["stats"]
        assert stats["total_revenue"] == 40.0
        assert stats["total_orders"] == 2
        assert stats["paid_orders"] == 2
        assert stats["avg_order_value"] == 20.0
        assert stats["active_customers"] == 2

        assert len(data["revenue_chart"]) == 1
        assert data["revenue_chart"][0]["orders"] == 2
        assert {o["user"]["email"] for o in data["recent_orders"]} == {"shopper@example.com", "second@example.com"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dashboard_empty(self, db_session):
        data = await order_service.dashboard_stats(db_session)
        assert data["stats"]["total_revenue"] == 0.0
        assert data["stats"]["avg_order_value"] == 0.0
        assert data["revenue_chart"] == []
        assert data["recent_orders"] == []


class TestOrderToDict:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_serializes_items(self, db_session, sample_order):
        res = await db_session.execute(select(Order).where(Order.id == "order_1"))
        data = order_service.order_to_dict(res.scalar_one())

        assert data["order_number"] == "ORD-20261019-ABC123"
        assert data["paid_at"] is None
        assert data["items"][0]["quantity"] == 2

        assert "items" not in order_service.order_to_dict(sample_order, include_items=False)
