"""Domain errors raised by the order service.

Every error carries the HTTP status and a short machine-readable code; the
exception handler registered in ``app.main`` turns them into the standard
``{success, message, error}`` envelope.
"""

from typing import Optional


class OrderServiceError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 400
    error: str = "ORDER_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error is not None:
            self.error = error
        super().__init__(message)

    def extra(self) -> dict:
        """Additional envelope fields for this error."""
        return {}


class ValidationError(OrderServiceError):
    status_code = 400
    error = "VALIDATION_ERROR"


class AddressRequiredError(ValidationError):
    """Checkout attempted without any address on file."""

    error = "ADDRESS_REQUIRED"
    action_required = "ADD_ADDRESS"

    def __init__(self, message: str = "Please add a shipping address first"):
        super().__init__(message)

    def extra(self) -> dict:
        return {"actionRequired": self.action_required}


class NotFoundError(OrderServiceError):
    status_code = 404
    error = "NOT_FOUND"


class AuthorizationError(OrderServiceError):
    status_code = 403
    error = "FORBIDDEN"


class IllegalTransitionError(OrderServiceError):
    """Requested status change is not allowed from the current status."""

    status_code = 400
    error = "ILLEGAL_TRANSITION"

    def __init__(self, current, requested, message: Optional[str] = None):
        self.current = current
        self.requested = requested
        super().__init__(
            message
            or f"Cannot transition from {_value(current)} to {_value(requested)}"
        )


class InsufficientStockError(OrderServiceError):
    status_code = 409
    error = "INSUFFICIENT_STOCK"

    def __init__(self, product_name: str, available: Optional[int] = None):
        self.product_name = product_name
        self.available = available
        super().__init__(f"Insufficient stock for {product_name}")


class EmptyCartError(OrderServiceError):
    status_code = 400
    error = "EMPTY_CART"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class CouponError(OrderServiceError):
    status_code = 400
    error = "COUPON_ERROR"


class InvalidCouponError(CouponError):
    error = "INVALID_COUPON"

    def __init__(self, message: str = "Invalid or expired coupon"):
        super().__init__(message)


class CouponExhaustedError(CouponError):
    error = "COUPON_EXHAUSTED"

    def __init__(self, message: str = "Coupon usage limit reached"):
        super().__init__(message)


class CouponAlreadyUsedError(CouponError):
    error = "COUPON_ALREADY_USED"

    def __init__(self, message: str = "You have already used this coupon"):
        super().__init__(message)


class MinimumPurchaseNotMetError(CouponError):
    error = "MINIMUM_PURCHASE_NOT_MET"

    def __init__(self, minimum):
        self.minimum = minimum
        super().__init__(f"Minimum purchase amount of {minimum} required")


def _value(status) -> str:
    return getattr(status, "value", None) or str(status)
