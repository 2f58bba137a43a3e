"""Order read model: detail lookups, listings and statistics."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional

from libs.auth.models import Role
from libs.common.logging import get_logger
from services.order_service.errors import AuthorizationError, NotFoundError
from services.order_service.models import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    UserRef,
)
from services.order_service.services.pricing import ZERO, quantize_money
from services.order_service.services.status import Actor
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

USER_PAGE_SIZE = 20
ADMIN_PAGE_SIZE = 50


@dataclass
class OrderRow:
    """A listed order with its item count and customer contact."""

    order: Order
    item_count: int
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None


@dataclass
class OrderFilters:
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None  # Inclusive


@dataclass
class OrderStats:
    total_orders: int = 0
    delivered_orders: int = 0
    cancelled_orders: int = 0
    total_amount: Decimal = ZERO
    average_order_value: Decimal = ZERO
    by_status: dict[str, int] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Detail
# ---------------------------------------------------------------------------


def _check_access(order: Order, actor: Optional[Actor]) -> None:
    if actor is None:
        return
    if actor.role != Role.ADMIN and order.user_id != actor.user_id:
        raise AuthorizationError("Access denied")


def _detail_query() -> Select:
    return select(Order).options(
        selectinload(Order.items), selectinload(Order.status_history)
    )


async def get_order_detail(
    db: AsyncSession, order_id: int, actor: Optional[Actor] = None
) -> Order:
    """Order with items and history; non-admin actors must own it."""
    result = await db.execute(
        _detail_query()
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found")
    _check_access(order, actor)
    return order


async def get_by_order_number(
    db: AsyncSession, order_number: str, actor: Optional[Actor] = None
) -> Order:
    result = await db.execute(
        _detail_query()
        .where(Order.order_number == order_number)
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found")
    _check_access(order, actor)
    return order


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


def _item_count_subquery():
    return (
        select(OrderItem.order_id, func.count(OrderItem.id).label("item_count"))
        .group_by(OrderItem.order_id)
        .subquery()
    )


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def escape_like(term: str) -> str:
    """Make LIKE wildcards in user input match literally (escape char ``\\``)."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_filters(query: Select, filters: OrderFilters) -> Select:
    if filters.status:
        query = query.where(Order.status == filters.status)
    if filters.payment_status:
        query = query.where(Order.payment_status == filters.payment_status)
    if filters.search:
        pattern = f"%{escape_like(filters.search.strip())}%"
        query = query.where(
            or_(
                Order.order_number.ilike(pattern, escape="\\"),
                UserRef.email.ilike(pattern, escape="\\"),
            )
        )
    if filters.date_from:
        query = query.where(Order.created_at >= _start_of_day(filters.date_from))
    if filters.date_to:
        query = query.where(
            Order.created_at < _start_of_day(filters.date_to + timedelta(days=1))
        )
    return query


async def _list_orders(
    db: AsyncSession,
    filters: OrderFilters,
    user_id: Optional[int],
    limit: int,
    offset: int,
) -> tuple[list[OrderRow], int]:
    counts = _item_count_subquery()
    query = (
        select(
            Order,
            func.coalesce(counts.c.item_count, 0),
            UserRef.email,
            UserRef.first_name,
            UserRef.last_name,
        )
        .outerjoin(counts, counts.c.order_id == Order.id)
        .outerjoin(UserRef, UserRef.id == Order.user_id)
    )
    count_query = select(func.count(Order.id)).outerjoin(
        UserRef, UserRef.id == Order.user_id
    )

    if user_id is not None:
        query = query.where(Order.user_id == user_id)
        count_query = count_query.where(Order.user_id == user_id)

    query = apply_filters(query, filters)
    count_query = apply_filters(count_query, filters)

    total = (await db.execute(count_query)).scalar_one()

    query = (
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset(offset)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)

    rows = []
    for order, item_count, email, first_name, last_name in result.all():
        name = " ".join(p for p in (first_name, last_name) if p) or None
        rows.append(
            OrderRow(
                order=order,
                item_count=item_count,
                customer_email=email,
                customer_name=name,
            )
        )
    return rows, total


async def list_user_orders(
    db: AsyncSession,
    user_id: int,
    limit: int = USER_PAGE_SIZE,
    offset: int = 0,
    status: Optional[OrderStatus] = None,
) -> tuple[list[OrderRow], int]:
    """A user's orders, newest first."""
    return await _list_orders(db, OrderFilters(status=status), user_id, limit, offset)


async def list_all_orders(
    db: AsyncSession,
    filters: Optional[OrderFilters] = None,
    limit: int = ADMIN_PAGE_SIZE,
    offset: int = 0,
) -> tuple[list[OrderRow], int]:
    """Every order matching the filters, newest first."""
    return await _list_orders(db, filters or OrderFilters(), None, limit, offset)


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


async def order_statistics(
    db: AsyncSession, user_id: Optional[int] = None
) -> OrderStats:
    """Counts per status plus total and average order value.

    Scoped to one user when ``user_id`` is given, global otherwise.
    """
    query = select(
        Order.status,
        func.count(Order.id),
        func.coalesce(func.sum(Order.total_amount), 0),
    ).group_by(Order.status)
    if user_id is not None:
        query = query.where(Order.user_id == user_id)

    result = await db.execute(query)

    stats = OrderStats()
    total_amount = ZERO
    for status, count, amount in result.all():
        stats.by_status[OrderStatus(status).value] = count
        stats.total_orders += count
        total_amount += Decimal(str(amount))

    stats.delivered_orders = stats.by_status.get(OrderStatus.DELIVERED.value, 0)
    stats.cancelled_orders = stats.by_status.get(OrderStatus.CANCELLED.value, 0)
    stats.total_amount = quantize_money(total_amount)
    if stats.total_orders:
        stats.average_order_value = quantize_money(total_amount / stats.total_orders)
    return stats
