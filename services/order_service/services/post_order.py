"""
Best-effort actions run after an order has been committed.

Each hook runs concurrently and in isolation: a failing hook is logged and
reported back to the caller but never fails the checkout or touches the
order itself.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Sequence

from libs.common.emails.client import get_email_client
from libs.common.logging import get_logger
from services.order_service.models import UserRef
from services.order_service.schemas import PostOrderResult
from services.order_service.services.checkout import PlacedOrder
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ORDER_PLACED_EVENT = "ORDER_PLACED"


@dataclass(frozen=True)
class OrderPlacedContext:
    """Everything a post-order hook needs, detached from the DB session."""

    order_id: int
    order_number: str
    user_id: Optional[int]
    email: Optional[str]
    full_name: Optional[str]
    total_amount: Decimal
    currency: str
    estimated_delivery_date: Optional[date]
    coupon_code: Optional[str] = None
    items: list[dict] = field(default_factory=list)


PostOrderHook = Callable[[OrderPlacedContext], Awaitable[None]]


async def build_order_placed_context(
    db: AsyncSession, placed: PlacedOrder
) -> OrderPlacedContext:
    order = placed.order
    user = await db.get(UserRef, order.user_id) if order.user_id else None
    return OrderPlacedContext(
        order_id=order.id,
        order_number=order.order_number,
        user_id=order.user_id,
        email=user.email if user else None,
        full_name=(user.full_name or None) if user else None,
        total_amount=order.total_amount,
        currency=order.currency,
        estimated_delivery_date=order.estimated_delivery_date,
        coupon_code=order.coupon_code,
        items=[
            {
                "name": item.product_name,
                "quantity": item.quantity,
                "price": str(item.unit_price),
                "total": str(item.total_price),
            }
            for item in placed.items
        ],
    )


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


async def send_confirmation_email(context: OrderPlacedContext) -> None:
    """Order confirmation e-mail through the Communications Service."""
    client = get_email_client()
    if not client.base_url:
        logger.info(
            "Communications service not configured; skipping confirmation for %s",
            context.order_number,
        )
        return
    if not context.email:
        raise ValueError(f"No email on file for order {context.order_number}")

    await client.send_template(
        template_type="order_confirmation",
        to_email=context.email,
        template_data={
            "order_number": context.order_number,
            "customer_name": context.full_name or "Customer",
            "total_amount": str(context.total_amount),
            "currency": context.currency,
            "estimated_delivery_date": (
                context.estimated_delivery_date.isoformat()
                if context.estimated_delivery_date
                else None
            ),
            "items": context.items,
        },
    )


async def emit_order_placed_event(context: OrderPlacedContext) -> None:
    """Structured ORDER_PLACED event for downstream consumers of the log stream."""
    logger.info(
        "%s %s",
        ORDER_PLACED_EVENT,
        context.order_number,
        extra={
            "extra_fields": {
                "event": ORDER_PLACED_EVENT,
                "order_id": context.order_id,
                "order_number": context.order_number,
                "user_id": context.user_id,
                "total_amount": str(context.total_amount),
                "currency": context.currency,
                "item_count": len(context.items),
            }
        },
    )


DEFAULT_POST_ORDER_HOOKS: tuple[PostOrderHook, ...] = (
    send_confirmation_email,
    emit_order_placed_event,
)


def get_post_order_hooks() -> Sequence[PostOrderHook]:
    """FastAPI dependency returning the hooks to run after checkout."""
    return DEFAULT_POST_ORDER_HOOKS


async def run_post_order_actions(
    context: OrderPlacedContext, hooks: Sequence[PostOrderHook]
) -> PostOrderResult:
    """Run every hook concurrently and collect failures."""
    results = await asyncio.gather(
        *(hook(context) for hook in hooks), return_exceptions=True
    )

    errors = []
    for hook, result in zip(hooks, results):
        if isinstance(result, Exception):
            name = getattr(hook, "__name__", repr(hook))
            logger.warning(
                "Post-order action %s failed for order %s: %s",
                name,
                context.order_number,
                result,
            )
            errors.append(f"{name}: {result}")

    return PostOrderResult(success=not errors, errors=errors)
