"""Order pricing: subtotal, discount, tax, shipping and total.

All money is ``Decimal``. Each derived field is rounded once, half-up, to two
places; totals are built from the rounded parts so that
``total = subtotal - discount + tax + shipping`` holds exactly.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Protocol, Union

from libs.common.config import get_settings

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]


class PricedLine(Protocol):
    unit_price: Decimal
    quantity: int


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total_amount: Decimal
    shipping_waived: Decimal = ZERO  # Fee a free-shipping coupon took off


def quantize_money(value: Number) -> Decimal:
    """Round to two decimal places, half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def line_total(unit_price: Number, quantity: int) -> Decimal:
    return quantize_money(quantize_money(unit_price) * quantity)


def calculate_subtotal(lines: Iterable[PricedLine]) -> Decimal:
    return quantize_money(
        sum((line_total(line.unit_price, line.quantity) for line in lines), ZERO)
    )


def shipping_fee(
    subtotal: Decimal,
    free_shipping_threshold: Decimal,
    flat_shipping_fee: Decimal,
) -> Decimal:
    """Flat fee below the threshold, free at or above it."""
    if subtotal >= free_shipping_threshold:
        return ZERO
    return quantize_money(flat_shipping_fee)


def calculate_totals(
    lines: Iterable[PricedLine],
    discount: Number = ZERO,
    tax_rate: Optional[Number] = None,
    free_shipping_threshold: Optional[Number] = None,
    flat_shipping_fee: Optional[Number] = None,
    waive_shipping: bool = False,
) -> OrderTotals:
    """
    Price a set of lines.

    Policy values default to the configured TAX_RATE, FREE_SHIPPING_THRESHOLD
    and FLAT_SHIPPING_FEE. The discount is clamped to ``[0, subtotal]``.
    """
    settings = get_settings()
    tax_rate = Decimal(str(settings.TAX_RATE if tax_rate is None else tax_rate))
    threshold = Decimal(
        str(
            settings.FREE_SHIPPING_THRESHOLD
            if free_shipping_threshold is None
            else free_shipping_threshold
        )
    )
    flat_fee = Decimal(
        str(settings.FLAT_SHIPPING_FEE if flat_shipping_fee is None else flat_shipping_fee)
    )

    subtotal = calculate_subtotal(lines)
    discount_amount = min(max(quantize_money(discount), ZERO), subtotal)
    taxable = subtotal - discount_amount
    tax_amount = quantize_money(taxable * tax_rate)

    fee = shipping_fee(subtotal, threshold, flat_fee)
    if waive_shipping:
        shipping_amount, shipping_waived = ZERO, fee
    else:
        shipping_amount, shipping_waived = fee, ZERO

    return OrderTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        shipping_amount=shipping_amount,
        total_amount=taxable + tax_amount + shipping_amount,
        shipping_waived=shipping_waived,
    )
