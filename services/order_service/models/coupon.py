"""Coupon models: discount rules and their usage ledger."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.order_service.models.enums import CouponType, enum_values
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Coupon(Base):
    """Discount codes that can be applied at checkout."""

    __tablename__ = "coupons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    type: Mapped[CouponType] = mapped_column(
        SAEnum(
            CouponType,
            name="coupon_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    value: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False
    )  # % or fixed amount

    min_purchase_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2), nullable=True
    )
    max_discount_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2), nullable=True
    )

    # Usage limits (None = unlimited)
    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usage_limit_per_user: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )
    times_used: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    # Validity period (open bounds allowed)
    valid_from: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    valid_until: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("value >= 0", name="value_non_negative"),
        CheckConstraint("times_used >= 0", name="times_used_non_negative"),
    )

    usages = relationship("CouponUsage", back_populates="coupon")

    def __repr__(self):
        return f"<Coupon {self.code}>"


class CouponUsage(Base):
    """One row per order that redeemed a coupon."""

    __tablename__ = "coupon_usage"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    coupon_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        Index("ix_coupon_usage_coupon_user", "coupon_id", "user_id"),
    )

    coupon = relationship("Coupon", back_populates="usages")

    def __repr__(self):
        return f"<CouponUsage coupon={self.coupon_id} order={self.order_id}>"
