"""Turn a user's cart into a placed order."""

from dataclasses import dataclass
from typing import Optional

from libs.common.config import Settings, get_settings
from libs.common.datetime_utils import add_business_days, utc_today
from libs.common.logging import get_logger
from libs.db.session import transaction
from services.order_service.errors import EmptyCartError, OrderServiceError
from services.order_service.models import (
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusHistory,
    PaymentStatus,
)
from services.order_service.services.coupons import (
    CouponQuote,
    evaluate_coupon,
    record_coupon_usage,
)
from services.order_service.services.pricing import (
    ZERO,
    calculate_subtotal,
    calculate_totals,
    line_total,
    quantize_money,
)
from services.order_service.services.providers import (
    AddressProvider,
    CartProvider,
    CheckoutLine,
)
from services.order_service.services.stock import ensure_available, reserve_stock
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckoutCommand:
    user_id: int
    shipping_address_id: Optional[int] = None
    billing_address_id: Optional[int] = None
    shipping_method: Optional[str] = None
    notes: Optional[str] = None
    coupon_code: Optional[str] = None


@dataclass
class PlacedOrder:
    order: Order
    items: list[OrderItem]
    coupon: Optional[CouponQuote] = None


async def generate_unique_order_number(db: AsyncSession, attempts: int) -> str:
    """Draw order numbers until one is unused (the unique index still guards)."""
    for _ in range(attempts):
        candidate = Order.generate_order_number()
        existing = await db.execute(
            select(Order.id).where(Order.order_number == candidate)
        )
        if existing.scalar_one_or_none() is None:
            return candidate
    raise OrderServiceError(
        "Could not allocate an order number, please retry",
        status_code=503,
        error="ORDER_NUMBER_UNAVAILABLE",
    )


def build_order_item(line: CheckoutLine) -> OrderItem:
    """Snapshot a cart line so later catalog edits never change the order."""
    return OrderItem(
        product_id=line.product_id,
        product_name=line.product_name,
        product_sku=line.sku,
        product_image_url=line.image_url,
        variant_name=line.variant_name,
        variant_attributes=line.variant_attributes or None,
        unit_price=quantize_money(line.unit_price),
        quantity=line.quantity,
        total_price=line_total(line.unit_price, line.quantity),
        discount=ZERO,
        tax=ZERO,
    )


async def create_order_from_cart(
    db: AsyncSession,
    command: CheckoutCommand,
    settings: Optional[Settings] = None,
) -> PlacedOrder:
    """
    Place an order from the user's cart.

    Addresses, cart contents, stock and the coupon are checked first. Then,
    in one transaction, the order header and item snapshots are written,
    stock is decremented, the creation history row is seeded, the cart is
    cleared and the coupon redemption is recorded. Any failure rolls all of
    it back.
    """
    settings = settings or get_settings()
    user_id = command.user_id

    shipping, billing = await AddressProvider(db).resolve_checkout_addresses(
        user_id, command.shipping_address_id, command.billing_address_id
    )

    cart = CartProvider(db)
    lines = await cart.get_cart_lines(user_id)
    if not lines:
        raise EmptyCartError()

    ensure_available(lines)

    subtotal = calculate_subtotal(lines)
    quote = None
    if command.coupon_code:
        quote = await evaluate_coupon(db, command.coupon_code, user_id, subtotal)

    totals = calculate_totals(
        lines,
        discount=quote.discount_amount if quote else ZERO,
        tax_rate=settings.TAX_RATE,
        free_shipping_threshold=settings.FREE_SHIPPING_THRESHOLD,
        flat_shipping_fee=settings.FLAT_SHIPPING_FEE,
        waive_shipping=bool(quote and quote.waives_shipping),
    )

    async with transaction(db):
        order_number = await generate_unique_order_number(
            db, settings.ORDER_NUMBER_ATTEMPTS
        )
        items = [build_order_item(line) for line in lines]
        order = Order(
            order_number=order_number,
            user_id=user_id,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            shipping_amount=totals.shipping_amount,
            discount_amount=totals.discount_amount,
            total_amount=totals.total_amount,
            currency=settings.DEFAULT_CURRENCY,
            shipping_address_id=shipping.id,
            billing_address_id=billing.id,
            shipping_address=shipping.snapshot(),
            billing_address=billing.snapshot(),
            shipping_method=command.shipping_method or settings.DEFAULT_SHIPPING_METHOD,
            estimated_delivery_date=add_business_days(
                utc_today(), settings.SHIPPING_DAYS
            ),
            coupon_code=quote.code if quote else None,
            coupon_discount=totals.discount_amount,
            notes=command.notes,
            items=items,
        )
        db.add(order)
        await db.flush()

        await reserve_stock(db, lines)

        db.add(
            OrderStatusHistory(
                order_id=order.id,
                old_status=None,
                new_status=OrderStatus.PENDING,
                changed_by=user_id,
                notes="Order placed",
            )
        )

        await cart.clear(user_id)

        if quote:
            await record_coupon_usage(
                db,
                quote,
                user_id=user_id,
                order_id=order.id,
                discount_amount=(
                    totals.shipping_waived
                    if quote.waives_shipping
                    else totals.discount_amount
                ),
            )

        await db.flush()

    logger.info(
        "Order %s placed by user %s: %d items, total %s %s",
        order.order_number,
        user_id,
        len(items),
        order.total_amount,
        order.currency,
    )
    return PlacedOrder(order=order, items=items, coupon=quote)
