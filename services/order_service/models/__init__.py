"""Order Service models package."""

from services.order_service.models.coupon import Coupon, CouponUsage
from services.order_service.models.enums import (
    AddressType,
    CouponType,
    FulfillmentStatus,
    ItemFulfillmentStatus,
    OrderStatus,
    PaymentStatus,
)
from services.order_service.models.order import (
    HistoryImmutableError,
    Order,
    OrderItem,
    OrderStatusHistory,
)
from services.order_service.models.refs import (
    Address,
    CartLine,
    Product,
    ProductImage,
    UserRef,
)

__all__ = [
    "Address",
    "AddressType",
    "CartLine",
    "Coupon",
    "CouponType",
    "CouponUsage",
    "FulfillmentStatus",
    "HistoryImmutableError",
    "ItemFulfillmentStatus",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderStatusHistory",
    "PaymentStatus",
    "Product",
    "ProductImage",
    "UserRef",
]
