"""
Shopper order endpoints.

    POST /orders                         — create order from checkout form
    GET  /orders                         — signed-in shopper's orders
    GET  /orders/number/{order_number}   — order by human-facing number
    GET  /orders/{order_id}              — single order with items
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import Profile
from deps import current_profile
from domain.errors import NotFoundError
from domain.responses import success_response
from models import CreateOrderRequest
from services import order_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    profile: Profile = Depends(current_profile),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.create_order(db, user_id=profile.id, data=request)
    await db.commit()
    return success_response(
        data={"orderId": order.id, "orderNumber": order.order_number, "total": order.total}
    )


@router.get("")
async def list_my_orders(
    profile: Profile = Depends(current_profile),
    db: AsyncSession = Depends(get_db),
):
    orders = await order_service.list_user_orders(db, user_id=profile.id)
    return success_response(
        data=[order_service.order_to_dict(o) for o in orders],
        meta={"total": len(orders)},
    )


@router.get("/number/{order_number}")
async def get_order_by_number(
    order_number: str,
    profile: Profile = Depends(current_profile),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.get_order_by_number(db, order_number=order_number, user_id=profile.id)
    if not order:
        raise NotFoundError("Order", order_number)
    return success_response(data=order_service.order_to_dict(order))


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    profile: Profile = Depends(current_profile),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.get_order(db, order_id=order_id, user_id=profile.id)
    if not order:
        raise NotFoundError("Order", order_id)
    return success_response(data=order_service.order_to_dict(order))
