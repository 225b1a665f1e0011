"""
Payment calculation in ledger minor units.

The ledger stores prices as unsigned integers in its smallest currency unit
(wei for an 18-decimal currency). A payment for a transition is always
``price * quantity`` in those units. Amounts routinely exceed 2**53, so every
step below works on Python integers and exact Decimal digits - a float never
touches a payment amount.

Usage:
    price = from_minor_units(product.price)        # Decimal("2")
    payment = compute_payment(price, product.quantity)
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

from .exceptions import InvalidPriceError


DEFAULT_DECIMALS = 18

PriceInput = Union[str, int, Decimal]


def _parse_price(unit_price_major: PriceInput) -> Decimal:
    """Parse a human-scale price into a finite, non-negative Decimal."""
    # bool is an int subclass and float would already have lost precision
    if isinstance(unit_price_major, (bool, float)):
        raise InvalidPriceError(unit_price_major, "floating-point prices are not accepted")

    if isinstance(unit_price_major, str):
        text = unit_price_major.strip()
        if not text:
            raise InvalidPriceError(unit_price_major, "empty value")
        try:
            value = Decimal(text)
        except InvalidOperation:
            raise InvalidPriceError(unit_price_major)
    elif isinstance(unit_price_major, (int, Decimal)):
        value = Decimal(unit_price_major)
    else:
        raise InvalidPriceError(unit_price_major, f"unsupported type {type(unit_price_major).__name__}")

    if not value.is_finite():
        raise InvalidPriceError(unit_price_major, "value is not finite")
    if value.is_signed() and value != 0:
        raise InvalidPriceError(unit_price_major, "value is negative")

    return value


def to_minor_units(unit_price_major: PriceInput, decimals: int = DEFAULT_DECIMALS) -> int:
    """
    Scale a major-unit price to the ledger's integer minor units.

    The conversion is done on the Decimal's digit tuple so no context
    precision or rounding is involved.

    Args:
        unit_price_major: Price as a decimal string, Decimal or int
        decimals: Ledger currency exponent

    Returns:
        Price in minor units

    Raises:
        InvalidPriceError: If the price is malformed, negative, or has more
            fractional digits than the currency supports
    """
    value = _parse_price(unit_price_major)

    _, digits, exponent = value.as_tuple()
    coefficient = int("".join(str(d) for d in digits)) if digits else 0
    shift = exponent + decimals

    if shift >= 0:
        return coefficient * 10 ** shift

    divisor = 10 ** -shift
    if coefficient % divisor:
        raise InvalidPriceError(
            unit_price_major,
            f"more than {decimals} fractional digits"
        )
    return coefficient // divisor


def from_minor_units(amount: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """
    Convert a minor-unit integer into an exact major-unit Decimal.

    Used for display and for re-deriving the major price from the ledger's
    stored value before computing a payment.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidPriceError(amount, "minor-unit amount must be an integer")
    if amount < 0:
        raise InvalidPriceError(amount, "value is negative")

    digits = tuple(int(d) for d in str(amount))
    return Decimal((0, digits, -decimals))


def format_major_units(amount: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render a minor-unit amount as a plain major-unit string ("1.5", "2")."""
    text = format(from_minor_units(amount, decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def compute_payment(
    unit_price_major: PriceInput,
    quantity: int,
    decimals: int = DEFAULT_DECIMALS
) -> int:
    """
    Compute the exact payment owed for a transition.

    ``payment = to_minor_units(unit_price_major) * quantity``

    Callers must pass the price and quantity read from the ledger at
    submission time, not values cached from an earlier catalog load.

    Args:
        unit_price_major: Unit price in major units (e.g. "1.5")
        quantity: Number of units, a non-negative integer
        decimals: Ledger currency exponent

    Returns:
        Payment in minor units

    Raises:
        InvalidPriceError: If the price is not a non-negative decimal
        ValueError: If quantity is not a non-negative integer
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValueError(f"Quantity must be an integer, got {quantity!r}")
    if quantity < 0:
        raise ValueError(f"Quantity must be non-negative, got {quantity}")

    return to_minor_units(unit_price_major, decimals) * quantity
