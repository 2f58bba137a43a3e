"""Unit tests for coupon discount math and eligibility checks."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from services.order_service.errors import (
    CouponAlreadyUsedError,
    CouponExhaustedError,
    InvalidCouponError,
    MinimumPurchaseNotMetError,
)
from services.order_service.models import Coupon, CouponType, CouponUsage
from services.order_service.services.coupons import (
    compute_discount,
    evaluate_coupon,
    record_coupon_usage,
)
from sqlalchemy import select
from tests.factories import (
    CouponFactory,
    OrderFactory,
    UserFactory,
    persist,
)


def _now():
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# compute_discount
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_percentage_discount():
    coupon = Coupon(type=CouponType.PERCENTAGE, value=Decimal("10"))
    assert compute_discount(coupon, Decimal("200.00")) == Decimal("20.00")


@pytest.mark.unit
def test_percentage_discount_is_capped():
    coupon = Coupon(
        type=CouponType.PERCENTAGE,
        value=Decimal("50"),
        max_discount_amount=Decimal("75"),
    )
    assert compute_discount(coupon, Decimal("400.00")) == Decimal("75.00")


@pytest.mark.unit
def test_fixed_discount():
    coupon = Coupon(type=CouponType.FIXED_AMOUNT, value=Decimal("10"))
    assert compute_discount(coupon, Decimal("200.00")) == Decimal("10.00")


@pytest.mark.unit
def test_free_shipping_has_no_subtotal_discount():
    coupon = Coupon(type=CouponType.FREE_SHIPPING, value=Decimal("0"))
    assert compute_discount(coupon, Decimal("200.00")) == Decimal("0.00")


@pytest.mark.unit
def test_percentage_rounds_half_up():
    coupon = Coupon(type=CouponType.PERCENTAGE, value=Decimal("15"))
    # 15% of 33.30 = 4.995
    assert compute_discount(coupon, Decimal("33.30")) == Decimal("5.00")


# ---------------------------------------------------------------------------
# evaluate_coupon
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.asyncio
async def test_valid_coupon_is_quoted(db_session):
    user = await persist(db_session, UserFactory.create())
    coupon = await persist(db_session, CouponFactory.create(code="SAVE10"))

    quote = await evaluate_coupon(db_session, " save10 ", user.id, Decimal("200.00"))

    assert quote.coupon_id == coupon.id
    assert quote.code == "SAVE10"
    assert quote.discount_amount == Decimal("10.00")
    assert quote.waives_shipping is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_free_shipping_coupon_waives_shipping(db_session):
    user = await persist(db_session, UserFactory.create())
    await persist(
        db_session,
        CouponFactory.create(
            code="FREESHIP", type=CouponType.FREE_SHIPPING, value=Decimal("0")
        ),
    )

    quote = await evaluate_coupon(db_session, "FREESHIP", user.id, Decimal("100.00"))

    assert quote.waives_shipping is True
    assert quote.discount_amount == Decimal("0.00")


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"is_active": False},
        {"valid_until": _now() - timedelta(days=1)},
        {"valid_from": _now() + timedelta(days=1)},
    ],
    ids=["inactive", "expired", "not-yet-valid"],
)
async def test_unusable_coupons_are_invalid(db_session, overrides):
    user = await persist(db_session, UserFactory.create())
    await persist(db_session, CouponFactory.create(code="NOPE", **overrides))

    with pytest.raises(InvalidCouponError):
        await evaluate_coupon(db_session, "NOPE", user.id, Decimal("200.00"))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_code_is_invalid(db_session):
    with pytest.raises(InvalidCouponError):
        await evaluate_coupon(db_session, "MISSING", 1, Decimal("200.00"))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_exhausted_coupon(db_session):
    user = await persist(db_session, UserFactory.create())
    await persist(
        db_session, CouponFactory.create(code="GONE", usage_limit=5, times_used=5)
    )

    with pytest.raises(CouponExhaustedError):
        await evaluate_coupon(db_session, "GONE", user.id, Decimal("200.00"))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_per_user_limit(db_session):
    user = await persist(db_session, UserFactory.create())
    coupon = await persist(
        db_session, CouponFactory.create(code="ONCE", usage_limit_per_user=1)
    )
    order = await persist(db_session, OrderFactory.create(user_id=user.id))
    await persist(
        db_session,
        CouponUsage(
            coupon_id=coupon.id,
            user_id=user.id,
            order_id=order.id,
            discount_amount=Decimal("10.00"),
        ),
    )

    with pytest.raises(CouponAlreadyUsedError):
        await evaluate_coupon(db_session, "ONCE", user.id, Decimal("200.00"))

    other = await persist(db_session, UserFactory.create())
    quote = await evaluate_coupon(db_session, "ONCE", other.id, Decimal("200.00"))
    assert quote.coupon_id == coupon.id


@pytest.mark.unit
@pytest.mark.asyncio
async def test_minimum_purchase(db_session):
    user = await persist(db_session, UserFactory.create())
    await persist(
        db_session,
        CouponFactory.create(code="BIGSPEND", min_purchase_amount=Decimal("1000")),
    )

    with pytest.raises(MinimumPurchaseNotMetError) as exc:
        await evaluate_coupon(db_session, "BIGSPEND", user.id, Decimal("200.00"))

    assert "1000.00" in exc.value.message


# ---------------------------------------------------------------------------
# record_coupon_usage
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.asyncio
async def test_redemption_increments_usage(db_session):
    user = await persist(db_session, UserFactory.create())
    coupon = await persist(db_session, CouponFactory.create(code="SAVE10"))
    order = await persist(db_session, OrderFactory.create(user_id=user.id))
    coupon_id, user_id, order_id = coupon.id, user.id, order.id

    quote = await evaluate_coupon(db_session, "SAVE10", user_id, Decimal("200.00"))
    await record_coupon_usage(db_session, quote, user_id=user_id, order_id=order_id)
    await db_session.commit()

    await db_session.refresh(coupon)
    assert coupon.times_used == 1

    usages = (
        await db_session.execute(
            select(CouponUsage).where(CouponUsage.coupon_id == coupon_id)
        )
    ).scalars().all()
    assert len(usages) == 1
    assert usages[0].order_id == order_id
    assert usages[0].discount_amount == Decimal("10.00")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_redemption_past_limit_is_refused(db_session):
    user = await persist(db_session, UserFactory.create())
    coupon = await persist(db_session, CouponFactory.create(code="LAST", usage_limit=1))
    order = await persist(db_session, OrderFactory.create(user_id=user.id))

    quote = await evaluate_coupon(db_session, "LAST", user.id, Decimal("200.00"))
    await record_coupon_usage(db_session, quote, user_id=user.id, order_id=order.id)
    await db_session.commit()

    # A quote taken before the last redemption landed
    with pytest.raises(CouponExhaustedError):
        await record_coupon_usage(
            db_session, quote, user_id=user.id, order_id=order.id
        )
    await db_session.rollback()

    await db_session.refresh(coupon)
    assert coupon.times_used == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_second_redemption_from_a_stale_quote_hits_the_per_user_limit(
    db_session,
):
    user = await persist(db_session, UserFactory.create())
    coupon = await persist(
        db_session, CouponFactory.create(code="WELCOME", usage_limit_per_user=1)
    )
    first, second = await persist(
        db_session,
        OrderFactory.create(user_id=user.id),
        OrderFactory.create(user_id=user.id),
    )
    coupon_id, user_id = coupon.id, user.id
    first_id, second_id = first.id, second.id

    # Two checkouts by the same user both quote before either redeems
    quote_a = await evaluate_coupon(db_session, "WELCOME", user_id, Decimal("200.00"))
    quote_b = await evaluate_coupon(db_session, "WELCOME", user_id, Decimal("200.00"))

    await record_coupon_usage(db_session, quote_a, user_id=user_id, order_id=first_id)
    await db_session.commit()

    with pytest.raises(CouponAlreadyUsedError):
        await record_coupon_usage(
            db_session, quote_b, user_id=user_id, order_id=second_id
        )
    await db_session.rollback()

    await db_session.refresh(coupon)
    assert coupon.times_used == 1
    usages = (
        await db_session.execute(
            select(CouponUsage).where(CouponUsage.coupon_id == coupon_id)
        )
    ).scalars().all()
    assert [u.order_id for u in usages] == [first_id]
