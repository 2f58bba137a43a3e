"""Admin order routes: filtered listing, statistics and status override."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.order_service.models import OrderStatus, PaymentStatus
from services.order_service.routers._helpers import to_list_response, to_statistics
from services.order_service.schemas import (
    AdminStatusUpdateRequest,
    ApiResponse,
    OrderDetail,
    OrderListResponse,
    OrderStatistics,
    UserOrdersAdminResponse,
)
from services.order_service.services.queries import (
    ADMIN_PAGE_SIZE,
    USER_PAGE_SIZE,
    OrderFilters,
    get_order_detail,
    list_all_orders,
    list_user_orders,
    order_statistics,
)
from services.order_service.services.status import Actor, OverrideStatus, change_status
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/orders", tags=["admin-orders"])


@router.get("", response_model=ApiResponse[OrderListResponse])
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = Query(ADMIN_PAGE_SIZE, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all orders with filters."""
    filters = OrderFilters(
        status=status_filter,
        payment_status=payment_status,
        search=search,
        date_from=date_from,
        date_to=date_to,
    )
    rows, total = await list_all_orders(db, filters, limit=limit, offset=offset)
    return ApiResponse(data=to_list_response(rows, total, limit, offset))


@router.get("/statistics", response_model=ApiResponse[OrderStatistics])
async def get_statistics(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Global order statistics."""
    stats = await order_statistics(db)
    return ApiResponse(data=to_statistics(stats))


@router.get("/user/{user_id}", response_model=ApiResponse[UserOrdersAdminResponse])
async def get_user_orders(
    user_id: int,
    limit: int = Query(USER_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """One customer's orders and statistics."""
    rows, total = await list_user_orders(db, user_id, limit=limit, offset=offset)
    stats = await order_statistics(db, user_id=user_id)
    return ApiResponse(
        data=UserOrdersAdminResponse(
            user_id=user_id,
            orders=to_list_response(rows, total, limit, offset),
            statistics=to_statistics(stats),
        )
    )


@router.patch("/{order_id}/status", response_model=ApiResponse[OrderDetail])
async def override_order_status(
    order_id: int,
    payload: AdminStatusUpdateRequest,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Set any status directly, bypassing the fulfilment table."""
    command = OverrideStatus(to=payload.status, notes=payload.notes)
    await change_status(db, order_id, Actor.from_user(current_user), command)
    order = await get_order_detail(db, order_id)
    return ApiResponse(
        data=OrderDetail.model_validate(order),
        message="Order status updated successfully",
    )
