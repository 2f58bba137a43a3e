"""Order status workflow: commands, authorization policy and transitions."""

from dataclasses import dataclass
from typing import Optional, Union

from libs.auth.models import AuthUser, Role
from libs.common.datetime_utils import utc_now, utc_today
from libs.common.logging import get_logger
from libs.db.session import transaction
from services.order_service.errors import (
    AuthorizationError,
    IllegalTransitionError,
    NotFoundError,
)
from services.order_service.models import (
    FulfillmentStatus,
    ItemFulfillmentStatus,
    Order,
    OrderStatus,
    OrderStatusHistory,
)
from services.order_service.services.stock import reserve_stock, restore_stock
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Actors and commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: Role

    @classmethod
    def from_user(cls, user: AuthUser) -> "Actor":
        return cls(user_id=user.user_id, role=user.role)


@dataclass(frozen=True)
class AdvanceStatus:
    """Move an order one step along the fulfilment table (vendor/admin)."""

    to: OrderStatus
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None


@dataclass(frozen=True)
class CancelOrder:
    """Owner cancels their own order before it is processed."""

    reason: Optional[str] = None


@dataclass(frozen=True)
class OverrideStatus:
    """Admin sets any status directly."""

    to: OrderStatus
    notes: Optional[str] = None


StatusCommand = Union[AdvanceStatus, CancelOrder, OverrideStatus]


FORWARD_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.PACKED, OrderStatus.CANCELLED}),
    OrderStatus.PACKED: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
}

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


def authorize(actor: Actor, command: StatusCommand, order: Order) -> None:
    """Single authorization policy for status commands. Raises on deny."""
    if isinstance(command, AdvanceStatus):
        if actor.role not in (Role.VENDOR, Role.ADMIN):
            raise AuthorizationError("Only vendors or admins can update order status")
    elif isinstance(command, OverrideStatus):
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Only admins can override order status")
    elif isinstance(command, CancelOrder):
        if order.user_id != actor.user_id:
            raise AuthorizationError("You can only cancel your own orders")
    else:
        raise TypeError(f"Unknown status command: {command!r}")


def target_status(command: StatusCommand) -> OrderStatus:
    if isinstance(command, CancelOrder):
        return OrderStatus.CANCELLED
    return command.to


def validate_transition(current: OrderStatus, command: StatusCommand) -> OrderStatus:
    """Return the target status, or raise if the workflow forbids it."""
    target = target_status(command)

    if isinstance(command, OverrideStatus):
        return target

    if isinstance(command, CancelOrder):
        if current not in CANCELLABLE_STATUSES:
            raise IllegalTransitionError(
                current,
                target,
                f"Order cannot be cancelled in {current.value} status",
            )
        return target

    if target not in FORWARD_TRANSITIONS.get(current, frozenset()):
        raise IllegalTransitionError(current, target)
    return target


# ---------------------------------------------------------------------------
# Transition
# ---------------------------------------------------------------------------


def _notes_for(command: StatusCommand) -> Optional[str]:
    if isinstance(command, CancelOrder):
        return command.reason
    return command.notes


def _apply_side_effects(
    order: Order, target: OrderStatus, actor: Actor, command: StatusCommand
) -> None:
    now = utc_now()

    if target == OrderStatus.CONFIRMED:
        order.confirmed_at = now

    elif target == OrderStatus.SHIPPED:
        order.shipped_at = now
        if isinstance(command, AdvanceStatus):
            if command.tracking_number:
                order.tracking_number = command.tracking_number
            if command.carrier:
                order.carrier = command.carrier

    elif target == OrderStatus.DELIVERED:
        order.delivered_at = now
        order.actual_delivery_date = utc_today()
        order.fulfillment_status = FulfillmentStatus.FULFILLED
        for item in order.items:
            item.fulfillment_status = ItemFulfillmentStatus.FULFILLED

    elif target == OrderStatus.CANCELLED:
        order.cancelled_at = now
        order.cancelled_by = actor.user_id
        order.cancellation_reason = _notes_for(command)
        for item in order.items:
            item.fulfillment_status = ItemFulfillmentStatus.CANCELLED


async def load_order_for_update(db: AsyncSession, order_id: int) -> Order:
    result = await db.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found")
    return order


async def sync_stock_reservation(
    db: AsyncSession, order: Order, target: OrderStatus
) -> None:
    """
    Keep product stock in step with the order's status.

    A cancelled order holds no stock: entering ``cancelled`` gives the
    quantities back once, and leaving it (admin override) takes them again,
    failing with InsufficientStockError when stock has since run out.
    """
    if target == OrderStatus.CANCELLED:
        if order.stock_reserved:
            restored = await restore_stock(db, order.items)
            order.stock_reserved = False
            logger.info(
                "Restored stock for %d items of order %s", restored, order.order_number
            )
    elif not order.stock_reserved:
        await reserve_stock(db, order.items)
        order.stock_reserved = True
        logger.info("Re-reserved stock for order %s", order.order_number)


async def change_status(
    db: AsyncSession, order_id: int, actor: Actor, command: StatusCommand
) -> Order:
    """
    Authorize, validate and apply a status command.

    The order row is locked for the duration; the status update, its side
    effects, the stock restore or re-reservation and the history row commit
    together.
    """
    async with transaction(db):
        order = await load_order_for_update(db, order_id)
        authorize(actor, command, order)

        old_status = order.status
        target = validate_transition(old_status, command)

        _apply_side_effects(order, target, actor, command)
        order.status = target

        await sync_stock_reservation(db, order, target)

        db.add(
            OrderStatusHistory(
                order_id=order.id,
                old_status=old_status,
                new_status=target,
                changed_by=actor.user_id,
                notes=_notes_for(command),
            )
        )
        await db.flush()

    logger.info(
        "Order %s status %s -> %s by user %s (%s)",
        order.order_number,
        old_status.value,
        target.value,
        actor.user_id,
        type(command).__name__,
    )
    return order
