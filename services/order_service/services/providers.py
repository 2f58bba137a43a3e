"""Collaborator boundaries for cart, product and address data.

These tables belong to other services; the order core only reads them and
mutates stock and cart rows inside its own transactions.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from libs.common.logging import get_logger
from services.order_service.errors import (
    AddressRequiredError,
    NotFoundError,
    ValidationError,
)
from services.order_service.models import Address, CartLine, Product
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckoutLine:
    """A cart line joined with the live product data it is priced from."""

    product_id: int
    product_name: str
    sku: Optional[str]
    unit_price: Decimal
    quantity: int
    available_stock: int
    image_url: Optional[str] = None
    variant_attributes: dict = field(default_factory=dict)

    @property
    def variant_name(self) -> Optional[str]:
        if not self.variant_attributes:
            return None
        return " / ".join(str(v) for v in self.variant_attributes.values())


@dataclass(frozen=True)
class PriceAndStock:
    product_id: int
    price: Decimal
    stock_quantity: int
    is_active: bool


class CartProvider:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_cart_lines(self, user_id: int) -> list[CheckoutLine]:
        """Cart contents with live price, stock, sku and primary image."""
        result = await self.db.execute(
            select(CartLine)
            .options(selectinload(CartLine.product).selectinload(Product.images))
            .where(CartLine.user_id == user_id)
            .order_by(CartLine.added_at, CartLine.id)
            .execution_options(populate_existing=True)
        )
        lines = []
        for row in result.scalars().all():
            product = row.product
            if product is None or not product.is_active:
                name = product.name if product else f"Product {row.product_id}"
                raise ValidationError(f"{name} is no longer available")

            primary = next((img for img in product.images if img.is_primary), None)
            variant = {
                key: value
                for key, value in (
                    ("size", row.variant_size),
                    ("color", row.variant_color),
                )
                if value
            }
            lines.append(
                CheckoutLine(
                    product_id=product.id,
                    product_name=product.name,
                    sku=product.sku,
                    unit_price=product.price,
                    quantity=row.quantity,
                    available_stock=product.stock_quantity,
                    image_url=primary.url if primary else None,
                    variant_attributes=variant,
                )
            )
        return lines

    async def clear(self, user_id: int) -> None:
        await self.db.execute(
            delete(CartLine)
            .where(CartLine.user_id == user_id)
            .execution_options(synchronize_session=False)
        )


class ProductProvider:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_price_and_stock(self, product_id: int) -> PriceAndStock:
        result = await self.db.execute(
            select(
                Product.id, Product.price, Product.stock_quantity, Product.is_active
            ).where(Product.id == product_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Product not found")
        return PriceAndStock(
            product_id=row.id,
            price=row.price,
            stock_quantity=row.stock_quantity,
            is_active=row.is_active,
        )

    async def adjust_stock(self, product_id: int, delta: int) -> bool:
        """
        Add ``delta`` to a product's stock in one statement.

        Negative deltas only apply while enough stock remains; returns False
        when the product is missing or the decrement would go below zero.
        """
        stmt = update(Product).where(Product.id == product_id)
        if delta < 0:
            stmt = stmt.where(Product.stock_quantity >= -delta)
        result = await self.db.execute(
            stmt.values(stock_quantity=Product.stock_quantity + delta).execution_options(
                synchronize_session=False
            )
        )
        return result.rowcount == 1


class AddressProvider:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, address_id: int) -> Optional[Address]:
        return await self.db.get(Address, address_id)

    async def list_for_user(self, user_id: int) -> list[Address]:
        """User's addresses, default first."""
        result = await self.db.execute(
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.id)
        )
        return list(result.scalars().all())

    async def _owned(self, address_id: int, user_id: int, label: str) -> Address:
        address = await self.get(address_id)
        if address is None or address.user_id != user_id:
            raise NotFoundError(f"{label} address not found")
        return address

    async def resolve_checkout_addresses(
        self,
        user_id: int,
        shipping_address_id: Optional[int] = None,
        billing_address_id: Optional[int] = None,
    ) -> tuple[Address, Address]:
        """
        Pick shipping and billing addresses for a checkout.

        Without an explicit shipping address the default (else the first) one
        on file is used; billing falls back to shipping.
        """
        if shipping_address_id is not None:
            shipping = await self._owned(shipping_address_id, user_id, "Shipping")
        else:
            addresses = await self.list_for_user(user_id)
            if not addresses:
                raise AddressRequiredError()
            shipping = addresses[0]

        if billing_address_id is not None:
            billing = await self._owned(billing_address_id, user_id, "Billing")
        else:
            billing = shipping

        return shipping, billing
