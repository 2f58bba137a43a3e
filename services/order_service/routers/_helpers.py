"""Shared helpers for order routers."""

from fastapi import Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from services.order_service.schemas import (
    OrderListResponse,
    OrderStatistics,
    OrderSummary,
)
from services.order_service.services.queries import OrderRow, OrderStats
from services.order_service.services.status import Actor


async def get_actor(current_user: AuthUser = Depends(get_current_user)) -> Actor:
    """The authenticated caller as a status-workflow actor."""
    return Actor.from_user(current_user)


def to_summary(row: OrderRow) -> OrderSummary:
    return OrderSummary.model_validate(row.order).model_copy(
        update={
            "item_count": row.item_count,
            "customer_email": row.customer_email,
            "customer_name": row.customer_name,
        }
    )


def to_list_response(
    rows: list[OrderRow], total: int, limit: int, offset: int
) -> OrderListResponse:
    return OrderListResponse(
        items=[to_summary(row) for row in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


def to_statistics(stats: OrderStats) -> OrderStatistics:
    return OrderStatistics.model_validate(stats)
