"""
Admin console endpoints — order management and dashboard aggregates.
"""
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import Profile
from deps import Pagination, pagination_params, require_admin
from domain.enums import OrderStatus
from domain.responses import paginated_response, success_response
from models import OrderStatusUpdateRequest
from services import order_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/orders")
async def list_orders(
    status: OrderStatus | None = Query(None),
    page: Pagination = Depends(pagination_params),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    orders, total = await order_service.list_orders(
        db,
        status=status.value if status else None,
        limit=page["limit"],
        offset=page["offset"],
    )
    return paginated_response(
        [order_service.order_to_dict(o, include_items=False) for o in orders],
        limit=page["limit"],
        offset=page["offset"],
        total=total,
    )


@router.patch("/orders/{order_id}/status")
async def update_order_status(
    order_id: str,
    request: OrderStatusUpdateRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.update_order_status(
        db,
        order_id=order_id,
        status=request.status.value,
        tracking_number=request.tracking_number,
    )
    logger.info(f"Admin {admin.email} set order {order.order_number} to {order.status}")
    return success_response(data=order_service.order_to_dict(order))


@router.get("/dashboard")
async def dashboard(
    days: int = Query(30, ge=1, le=365),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    data = await order_service.dashboard_stats(db, days=days)
    return success_response(data=data, meta={"days": days})
