"""Order models: order header, line item snapshots, status history."""

import random
import time
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.order_service.models.enums import (
    FulfillmentStatus,
    ItemFulfillmentStatus,
    OrderStatus,
    PaymentStatus,
    enum_values,
)
from sqlalchemy import JSON, Boolean, CheckConstraint, Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

JSONType = JSON().with_variant(JSONB(), "postgresql")

Money = Numeric(10, 2)


def _status_enum(enum_cls, name: str) -> SAEnum:
    return SAEnum(enum_cls, values_callable=enum_values, name=name, length=30)


# ============================================================================
# ORDER
# ============================================================================


class Order(Base):
    """Orders (aggregate root)."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )

    # Customer (detached, not deleted, when the user goes away)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True
    )

    # Status
    status: Mapped[OrderStatus] = mapped_column(
        _status_enum(OrderStatus, "order_status_enum"),
        default=OrderStatus.PENDING,
        server_default=OrderStatus.PENDING.value,
        index=True,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _status_enum(PaymentStatus, "order_payment_status_enum"),
        default=PaymentStatus.PENDING,
        server_default=PaymentStatus.PENDING.value,
        index=True,
    )
    fulfillment_status: Mapped[FulfillmentStatus] = mapped_column(
        _status_enum(FulfillmentStatus, "order_fulfillment_status_enum"),
        default=FulfillmentStatus.UNFULFILLED,
        server_default=FulfillmentStatus.UNFULFILLED.value,
    )

    # Pricing
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Money, default=0, server_default="0")
    shipping_amount: Mapped[Decimal] = mapped_column(
        Money, default=0, server_default="0"
    )
    discount_amount: Mapped[Decimal] = mapped_column(
        Money, default=0, server_default="0"
    )
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), default="INR", server_default="INR"
    )

    # Addresses: ids for traceability, snapshots for history
    shipping_address_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True
    )
    billing_address_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True
    )
    shipping_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    billing_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    # Shipping
    shipping_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    carrier: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    estimated_delivery_date: Mapped[Optional[date]] = mapped_column(
        Date, nullable=True
    )
    actual_delivery_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Coupon
    coupon_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    coupon_discount: Mapped[Decimal] = mapped_column(
        Money, default=0, server_default="0"
    )

    # Notes
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Cancellation
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # True while the item quantities are held out of product stock
    stock_reserved: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )

    # Timestamps
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    shipped_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="subtotal_non_negative"),
        CheckConstraint("tax_amount >= 0", name="tax_non_negative"),
        CheckConstraint("shipping_amount >= 0", name="shipping_non_negative"),
        CheckConstraint("discount_amount >= 0", name="discount_non_negative"),
        CheckConstraint("total_amount >= 0", name="total_non_negative"),
    )

    # Relationships
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        passive_deletes="all",
        order_by=lambda: OrderStatusHistory.id.desc(),
    )
    user = relationship("UserRef", foreign_keys=[user_id])

    @staticmethod
    def generate_order_number() -> str:
        """Generate an order number like ORD-1718000000000-042."""
        timestamp = int(time.time() * 1000)
        return f"ORD-{timestamp}-{random.randint(0, 999):03d}"

    @property
    def status_label(self) -> str:
        return self.status.label

    def __repr__(self):
        return f"<Order {self.order_number} status={self.status}>"


class OrderItem(Base):
    """Order line items (snapshot at order time)."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
    )
    product_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="SET NULL"), index=True, nullable=True
    )

    # Snapshot at order time (products may change or disappear)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    product_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    variant_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    variant_attributes: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    discount: Mapped[Decimal] = mapped_column(Money, default=0, server_default="0")
    tax: Mapped[Decimal] = mapped_column(Money, default=0, server_default="0")

    fulfillment_status: Mapped[ItemFulfillmentStatus] = mapped_column(
        _status_enum(ItemFulfillmentStatus, "order_item_fulfillment_status_enum"),
        default=ItemFulfillmentStatus.UNFULFILLED,
        server_default=ItemFulfillmentStatus.UNFULFILLED.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_quantity"),
        CheckConstraint("unit_price >= 0", name="unit_price_non_negative"),
        CheckConstraint("total_price >= 0", name="total_price_non_negative"),
    )

    # Relationships
    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.product_name} qty={self.quantity}>"


class OrderStatusHistory(Base):
    """Append-only log of order status transitions."""

    __tablename__ = "order_status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    old_status: Mapped[Optional[OrderStatus]] = mapped_column(
        _status_enum(OrderStatus, "order_status_enum"), nullable=True
    )
    new_status: Mapped[OrderStatus] = mapped_column(
        _status_enum(OrderStatus, "order_status_enum"), nullable=False
    )
    changed_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (Index("ix_order_status_history_order_id", "order_id"),)

    order = relationship("Order", back_populates="status_history")

    def __repr__(self):
        return f"<OrderStatusHistory {self.old_status}->{self.new_status}>"


class HistoryImmutableError(RuntimeError):
    """Raised when code tries to rewrite or delete a status history row."""


@event.listens_for(OrderStatusHistory, "before_update")
def _reject_history_update(mapper, connection, target):
    raise HistoryImmutableError("Order status history rows cannot be modified")


@event.listens_for(OrderStatusHistory, "before_delete")
def _reject_history_delete(mapper, connection, target):
    raise HistoryImmutableError("Order status history rows cannot be deleted")
