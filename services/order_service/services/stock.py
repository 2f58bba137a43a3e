"""Stock reservation and restoration."""

from typing import Iterable, Sequence, Union

from libs.common.logging import get_logger
from services.order_service.errors import InsufficientStockError
from services.order_service.models import OrderItem
from services.order_service.services.providers import CheckoutLine, ProductProvider
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def ensure_available(lines: Iterable[CheckoutLine]) -> None:
    """Fail on the first line whose product has less stock than requested."""
    for line in lines:
        if line.available_stock < line.quantity:
            raise InsufficientStockError(line.product_name, line.available_stock)


async def reserve_stock(
    db: AsyncSession, lines: Sequence[Union[CheckoutLine, OrderItem]]
) -> None:
    """
    Decrement stock for every line.

    Accepts checkout lines or order items; items whose product has since been
    deleted are skipped. Each decrement is a conditional UPDATE, so concurrent
    reservations can never take stock below zero. A line that cannot be
    reserved raises and the caller's transaction discards the decrements
    already made.
    """
    products = ProductProvider(db)
    for line in lines:
        if line.product_id is None:
            continue
        if not await products.adjust_stock(line.product_id, -line.quantity):
            logger.warning(
                "Stock reservation failed for product %s (qty %s)",
                line.product_id,
                line.quantity,
            )
            raise InsufficientStockError(line.product_name)


async def restore_stock(db: AsyncSession, items: Iterable[OrderItem]) -> int:
    """
    Give back the quantities recorded on order items.

    Items whose product has since been deleted are skipped. Returns the number
    of items restored.
    """
    products = ProductProvider(db)
    restored = 0
    for item in items:
        if item.product_id is None:
            continue
        if await products.adjust_stock(item.product_id, item.quantity):
            restored += 1
    return restored
