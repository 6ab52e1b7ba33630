"""Checkout Snapshot — pure money arithmetic and order-line materialization.

Invariants:
    - All totals are accumulated as integer minor units (cents), never as floats
    - from_minor_units(to_minor_units(p)) == p for every 2-decimal price
    - build_order_lines copies quantity and captured price verbatim: the order
      snapshot never re-reads the catalog price
    - Functions are PURE: inputs are read, never mutated

Design Decisions:
    - LineLike Protocol: CartItem ORM rows and plain test doubles both qualify
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol

from storefront.core.domain_types import MinorUnits


CENTS = Decimal("0.01")


class LineLike(Protocol):
    product_id: int
    quantity: int
    price_at_addition: Decimal


def to_minor_units(amount: Decimal) -> MinorUnits:
    """Decimal currency amount -> integer cents."""
    cents = (Decimal(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP)
    return MinorUnits(int(cents))


def from_minor_units(cents: int) -> Decimal:
    """Integer cents -> Decimal with exactly two places."""
    return (Decimal(cents) / 100).quantize(CENTS)


def line_total_minor(price: Decimal, quantity: int) -> MinorUnits:
    return MinorUnits(to_minor_units(price) * quantity)


def total_minor(lines: Iterable[LineLike]) -> MinorUnits:
    """Sum of price_at_addition * quantity over all lines, in cents."""
    return MinorUnits(sum(
        line_total_minor(line.price_at_addition, line.quantity)
        for line in lines
    ))


def cart_total(lines: Iterable[LineLike]) -> Decimal:
    """Implied cart total. Always equals the sum of its line items."""
    return from_minor_units(total_minor(lines))


def build_order_lines(lines: Iterable[LineLike]) -> list[dict]:
    """Snapshot cart lines into order-item field dicts."""
    return [
        {
            "product_id": line.product_id,
            "quantity": line.quantity,
            "price_at_order": Decimal(line.price_at_addition),
        }
        for line in lines
    ]
