"""Coupon evaluation and redemption."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.order_service.errors import (
    CouponAlreadyUsedError,
    CouponExhaustedError,
    InvalidCouponError,
    MinimumPurchaseNotMetError,
)
from services.order_service.models import Coupon, CouponType, CouponUsage
from services.order_service.services.pricing import ZERO, quantize_money
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class CouponQuote:
    """A coupon that passed every check, with the discount it grants."""

    coupon_id: int
    code: str
    type: CouponType
    discount_amount: Decimal
    waives_shipping: bool = False
    usage_limit_per_user: Optional[int] = None


def normalize_code(code: str) -> str:
    return code.strip().upper()


def compute_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    """Subtotal discount for a coupon, capped by max_discount_amount."""
    if coupon.type == CouponType.PERCENTAGE:
        discount = subtotal * Decimal(coupon.value) / Decimal(100)
    elif coupon.type == CouponType.FIXED_AMOUNT:
        discount = Decimal(coupon.value)
    else:
        # Free shipping acts on the shipping fee, not the subtotal
        discount = ZERO

    if coupon.max_discount_amount is not None:
        discount = min(discount, Decimal(coupon.max_discount_amount))

    return quantize_money(discount)


async def get_redeemable_coupon(db: AsyncSession, code: str) -> Coupon:
    """Active coupon whose validity window contains now."""
    now = utc_now()
    result = await db.execute(
        select(Coupon).where(
            Coupon.code == normalize_code(code),
            Coupon.is_active.is_(True),
            or_(Coupon.valid_from.is_(None), Coupon.valid_from <= now),
            or_(Coupon.valid_until.is_(None), Coupon.valid_until >= now),
        )
    )
    coupon = result.scalar_one_or_none()
    if not coupon:
        raise InvalidCouponError()
    return coupon


async def count_user_redemptions(
    db: AsyncSession, coupon_id: int, user_id: int
) -> int:
    result = await db.execute(
        select(func.count(CouponUsage.id)).where(
            CouponUsage.coupon_id == coupon_id,
            CouponUsage.user_id == user_id,
        )
    )
    return result.scalar_one()


async def evaluate_coupon(
    db: AsyncSession,
    code: str,
    user_id: int,
    subtotal: Decimal,
) -> CouponQuote:
    """
    Check a coupon for this user and subtotal and quote its discount.

    Checks run in order: existence/active/validity window, global usage
    limit, per-user usage limit, minimum purchase.
    """
    coupon = await get_redeemable_coupon(db, code)

    if coupon.usage_limit is not None and coupon.times_used >= coupon.usage_limit:
        raise CouponExhaustedError()

    if coupon.usage_limit_per_user is not None:
        used = await count_user_redemptions(db, coupon.id, user_id)
        if used >= coupon.usage_limit_per_user:
            raise CouponAlreadyUsedError()

    if (
        coupon.min_purchase_amount is not None
        and subtotal < Decimal(coupon.min_purchase_amount)
    ):
        raise MinimumPurchaseNotMetError(quantize_money(coupon.min_purchase_amount))

    return CouponQuote(
        coupon_id=coupon.id,
        code=coupon.code,
        type=coupon.type,
        discount_amount=compute_discount(coupon, subtotal),
        waives_shipping=coupon.type == CouponType.FREE_SHIPPING,
        usage_limit_per_user=coupon.usage_limit_per_user,
    )


async def record_coupon_usage(
    db: AsyncSession,
    quote: CouponQuote,
    *,
    user_id: int,
    order_id: int,
    discount_amount: Optional[Decimal] = None,
) -> CouponUsage:
    """
    Record one redemption and bump ``times_used`` atomically.

    Must run inside the checkout transaction. The increment is conditional on
    the global limit and locks the coupon row until commit, so redemptions of
    one coupon are serialized: the per-user count taken after it sees every
    committed redemption. Either limit exceeded here rolls the whole checkout
    back.
    """
    result = await db.execute(
        update(Coupon)
        .where(
            Coupon.id == quote.coupon_id,
            or_(
                Coupon.usage_limit.is_(None),
                Coupon.times_used < Coupon.usage_limit,
            ),
        )
        .values(times_used=Coupon.times_used + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise CouponExhaustedError()

    if quote.usage_limit_per_user is not None:
        used = await count_user_redemptions(db, quote.coupon_id, user_id)
        if used >= quote.usage_limit_per_user:
            raise CouponAlreadyUsedError()

    usage = CouponUsage(
        coupon_id=quote.coupon_id,
        user_id=user_id,
        order_id=order_id,
        discount_amount=quote.discount_amount
        if discount_amount is None
        else discount_amount,
    )
    db.add(usage)
    await db.flush()

    logger.info(
        "Coupon %s redeemed by user %s on order %s", quote.code, user_id, order_id
    )
    return usage
