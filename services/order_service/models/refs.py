"""Reference models for tables owned by other services.

The order core reads users, products, images, cart lines and addresses, and
writes only ``products.stock_quantity`` and ``cart`` rows. Only the columns
this service touches are mapped.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.order_service.models.enums import AddressType, enum_values
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

EXTERNAL_TABLE = {"info": {"skip_autogenerate": True}}


class UserRef(Base):
    """Reference to the users table (auth service)."""

    __tablename__ = "users"
    __table_args__ = EXTERNAL_TABLE

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), default="customer", server_default="customer"
    )

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def __repr__(self):
        return f"<UserRef {self.id}>"


class Product(Base):
    """Reference to the products table (catalog service)."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="stock_non_negative"),
        EXTERNAL_TABLE,
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    stock_quantity: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    vendor_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    images = relationship("ProductImage", back_populates="product")

    def __repr__(self):
        return f"<Product {self.sku} stock={self.stock_quantity}>"


class ProductImage(Base):
    """Reference to the product_images table."""

    __tablename__ = "product_images"
    __table_args__ = EXTERNAL_TABLE

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    is_primary: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )

    product = relationship("Product", back_populates="images")


class CartLine(Base):
    """Reference to the cart table (one row per product per user)."""

    __tablename__ = "cart"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_quantity"),
        EXTERNAL_TABLE,
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    variant_size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    variant_color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    product = relationship("Product")

    def __repr__(self):
        return f"<CartLine product={self.product_id} qty={self.quantity}>"


class Address(Base):
    """Reference to the addresses table (profile service)."""

    __tablename__ = "addresses"
    __table_args__ = EXTERNAL_TABLE

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    type: Mapped[AddressType] = mapped_column(
        SAEnum(
            AddressType,
            values_callable=enum_values,
            native_enum=False,
            length=20,
        ),
        default=AddressType.HOME,
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    address_line1: Mapped[str] = mapped_column(String(255), nullable=False)
    address_line2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(20), nullable=False)
    country: Mapped[str] = mapped_column(
        String(100), default="India", server_default="India"
    )
    is_default: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def snapshot(self) -> dict:
        """Copy of the fields an order keeps, independent of later edits."""
        return {
            "id": self.id,
            "full_name": self.full_name,
            "phone": self.phone,
            "address_line1": self.address_line1,
            "address_line2": self.address_line2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
        }

    def __repr__(self):
        return f"<Address {self.id} user={self.user_id}>"
