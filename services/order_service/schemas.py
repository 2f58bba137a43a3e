"""Pydantic schemas for the Order Service."""

from datetime import date, datetime
from decimal import Decimal
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from services.order_service.models import (
    FulfillmentStatus,
    ItemFulfillmentStatus,
    OrderStatus,
    PaymentStatus,
)

T = TypeVar("T")


# ============================================================================
# ENVELOPE
# ============================================================================


class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None


# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class CheckoutRequest(BaseModel):
    """Place an order from the current cart."""

    shipping_address_id: Optional[int] = None
    billing_address_id: Optional[int] = None  # Defaults to the shipping address
    shipping_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=1000)
    coupon_code: Optional[str] = Field(None, max_length=50)

    @field_validator("coupon_code")
    @classmethod
    def normalize_coupon_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        return v or None


class PostOrderResult(BaseModel):
    """Outcome of the best-effort actions run after an order is placed."""

    success: bool
    errors: list[str] = []


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: Optional[int]
    product_name: str
    product_sku: Optional[str]
    product_image_url: Optional[str]
    variant_name: Optional[str]
    variant_attributes: Optional[dict]
    unit_price: Decimal
    quantity: int
    total_price: Decimal
    discount: Decimal
    tax: Decimal
    fulfillment_status: ItemFulfillmentStatus


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    old_status: Optional[OrderStatus]
    new_status: OrderStatus
    changed_by: Optional[int]
    notes: Optional[str]
    created_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    user_id: Optional[int]

    status: OrderStatus
    status_label: str
    payment_status: PaymentStatus
    fulfillment_status: FulfillmentStatus

    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    currency: str

    shipping_address_id: Optional[int]
    billing_address_id: Optional[int]
    shipping_address: Optional[dict]
    billing_address: Optional[dict]

    shipping_method: Optional[str]
    tracking_number: Optional[str]
    carrier: Optional[str]
    estimated_delivery_date: Optional[date]
    actual_delivery_date: Optional[date]

    coupon_code: Optional[str]
    coupon_discount: Decimal

    notes: Optional[str]

    cancelled_at: Optional[datetime]
    cancelled_by: Optional[int]
    cancellation_reason: Optional[str]
    confirmed_at: Optional[datetime]
    shipped_at: Optional[datetime]
    delivered_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class OrderDetail(OrderResponse):
    """Order with line items and status history (newest first)."""

    items: list[OrderItemResponse] = []
    status_history: list[StatusHistoryResponse] = []


class OrderSummary(OrderResponse):
    """List row: order header plus item count and customer contact."""

    item_count: int = 0
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None


class OrderListResponse(BaseModel):
    """Paginated order list."""

    items: list[OrderSummary]
    total: int
    limit: int
    offset: int


class CheckoutResponse(BaseModel):
    """Order placed from the cart."""

    order: OrderResponse
    items: list[OrderItemResponse]
    post_order: PostOrderResult


class StatusUpdateRequest(BaseModel):
    """Advance an order along the fulfilment workflow (vendor/admin)."""

    status: OrderStatus
    notes: Optional[str] = Field(None, max_length=1000)
    tracking_number: Optional[str] = Field(None, max_length=100)
    carrier: Optional[str] = Field(None, max_length=100)


class AdminStatusUpdateRequest(BaseModel):
    """Set any status directly (admin override)."""

    status: OrderStatus
    notes: Optional[str] = Field(None, max_length=1000)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


# ============================================================================
# STATISTICS SCHEMAS
# ============================================================================


class OrderStatistics(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_orders: int
    delivered_orders: int
    cancelled_orders: int
    total_amount: Decimal
    average_order_value: Decimal
    by_status: dict[str, int] = {}


class UserOrdersAdminResponse(BaseModel):
    """One customer's orders with their statistics (admin)."""

    user_id: int
    orders: OrderListResponse
    statistics: OrderStatistics
