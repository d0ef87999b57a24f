"""Order amount calculation.

Line subtotal is ``quantity × final_price``; the order total is
``subtotal − discount_total + tax_total`` where the tax applies to the
discounted subtotal.  Every amount is rounded half-up to cents.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from modules.orders.exceptions import InvalidOrderAmount

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    quantity: int
    unit_price: Decimal
    final_price: Optional[Decimal] = None

    @property
    def effective_price(self) -> Decimal:
        return self.unit_price if self.final_price is None else self.final_price

    @property
    def subtotal(self) -> Decimal:
        return line_subtotal(self.quantity, self.effective_price)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount_total: Decimal
    tax_total: Decimal
    total: Decimal


def line_subtotal(quantity: int, final_price: Decimal) -> Decimal:
    if quantity < 1:
        raise InvalidOrderAmount("Quantity must be at least 1.")
    if final_price < 0:
        raise InvalidOrderAmount("Prices cannot be negative.")
    return to_money(Decimal(quantity) * Decimal(final_price))


def calculate_totals(
    lines: Iterable[PricedLine],
    discount_total: Decimal = ZERO,
    tax_rate: Decimal = ZERO,
) -> OrderTotals:
    """Compute the order amounts for a set of priced lines.

    Raises:
        InvalidOrderAmount: a negative input, or a discount larger than the
            subtotal (the final total would be negative).
    """
    if discount_total < 0:
        raise InvalidOrderAmount("Discount total cannot be negative.")
    if tax_rate < 0:
        raise InvalidOrderAmount("Tax rate cannot be negative.")

    subtotal = ZERO
    for line in lines:
        if line.unit_price < 0:
            raise InvalidOrderAmount("Prices cannot be negative.")
        subtotal += line.subtotal

    discount = to_money(discount_total)
    taxable = subtotal - discount
    if taxable < 0:
        raise InvalidOrderAmount(
            f"Discount {discount} exceeds the order subtotal {subtotal}."
        )

    tax = to_money(taxable * Decimal(tax_rate))
    total = subtotal - discount + tax
    return OrderTotals(
        subtotal=to_money(subtotal),
        discount_total=discount,
        tax_total=tax,
        total=to_money(total),
    )
