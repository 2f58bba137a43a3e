"""Customer order routes: checkout, history, detail, cancel and status updates."""

from typing import Optional, Sequence

from fastapi import APIRouter, Depends, Query, status
from libs.db.session import get_async_db
from services.order_service.models import OrderStatus
from services.order_service.routers._helpers import (
    get_actor,
    to_list_response,
    to_statistics,
)
from services.order_service.schemas import (
    ApiResponse,
    CancelRequest,
    CheckoutRequest,
    CheckoutResponse,
    OrderDetail,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatistics,
    StatusUpdateRequest,
)
from services.order_service.services.checkout import (
    CheckoutCommand,
    create_order_from_cart,
)
from services.order_service.services.post_order import (
    PostOrderHook,
    build_order_placed_context,
    get_post_order_hooks,
    run_post_order_actions,
)
from services.order_service.services.queries import (
    USER_PAGE_SIZE,
    get_by_order_number,
    get_order_detail,
    list_user_orders,
    order_statistics,
)
from services.order_service.services.status import (
    Actor,
    AdvanceStatus,
    CancelOrder,
    change_status,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post(
    "/checkout",
    response_model=ApiResponse[CheckoutResponse],
    status_code=status.HTTP_201_CREATED,
)
async def checkout(
    payload: CheckoutRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_async_db),
    hooks: Sequence[PostOrderHook] = Depends(get_post_order_hooks),
):
    """Place an order from the current cart."""
    placed = await create_order_from_cart(
        db, CheckoutCommand(user_id=actor.user_id, **payload.model_dump())
    )

    context = await build_order_placed_context(db, placed)
    post_order = await run_post_order_actions(context, hooks)

    return ApiResponse(
        data=CheckoutResponse(
            order=OrderResponse.model_validate(placed.order),
            items=[OrderItemResponse.model_validate(i) for i in placed.items],
            post_order=post_order,
        ),
        message="Order placed successfully",
    )


# ============================================================================
# ORDER HISTORY
# ============================================================================


@router.get("", response_model=ApiResponse[OrderListResponse])
async def list_my_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    limit: int = Query(USER_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_async_db),
):
    """List the caller's orders, newest first."""
    rows, total = await list_user_orders(
        db, actor.user_id, limit=limit, offset=offset, status=status_filter
    )
    return ApiResponse(data=to_list_response(rows, total, limit, offset))


@router.get("/stats", response_model=ApiResponse[OrderStatistics])
async def my_order_stats(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_async_db),
):
    """Order statistics for the caller."""
    stats = await order_statistics(db, user_id=actor.user_id)
    return ApiResponse(data=to_statistics(stats))


@router.get("/number/{order_number}", response_model=ApiResponse[OrderDetail])
async def get_order_by_number(
    order_number: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_async_db),
):
    order = await get_by_order_number(db, order_number, actor)
    return ApiResponse(data=OrderDetail.model_validate(order))


@router.get("/{order_id}", response_model=ApiResponse[OrderDetail])
async def get_order(
    order_id: int,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_async_db),
):
    """Order detail with items and status history (owner or admin)."""
    order = await get_order_detail(db, order_id, actor)
    return ApiResponse(data=OrderDetail.model_validate(order))


# ============================================================================
# STATUS CHANGES
# ============================================================================


@router.post("/{order_id}/cancel", response_model=ApiResponse[OrderDetail])
async def cancel_order(
    order_id: int,
    payload: Optional[CancelRequest] = None,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel the caller's own pending or confirmed order."""
    reason = payload.reason if payload else None
    await change_status(db, order_id, actor, CancelOrder(reason=reason))
    order = await get_order_detail(db, order_id)
    return ApiResponse(
        data=OrderDetail.model_validate(order),
        message="Order cancelled successfully",
    )


@router.patch("/{order_id}/status", response_model=ApiResponse[OrderDetail])
async def update_order_status(
    order_id: int,
    payload: StatusUpdateRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_async_db),
):
    """Advance an order along the fulfilment workflow (vendor or admin)."""
    command = AdvanceStatus(
        to=payload.status,
        notes=payload.notes,
        tracking_number=payload.tracking_number,
        carrier=payload.carrier,
    )
    await change_status(db, order_id, actor, command)
    order = await get_order_detail(db, order_id)
    return ApiResponse(
        data=OrderDetail.model_validate(order),
        message="Order status updated successfully",
    )
