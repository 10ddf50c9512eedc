"""Discount calculation between base price, deal price and percentage."""

from decimal import Decimal
from uuid import UUID

from flashdeal.models.enums import DiscountMode
from flashdeal.services.errors import InconsistentDiscount

# Maximum accepted gap between the provided and the calculated percentage.
DISCOUNT_TOLERANCE = 0.01


def calculate_discount_percent(base_price: Decimal, deal_price: Decimal) -> float:
    """Calculate discount percentage: (base - deal) / base * 100

    Args:
        base_price: Regular price, must be > 0
        deal_price: Promotional price

    Returns:
        Unrounded discount percentage (negative when deal price exceeds base price)
    """
    return float((Decimal(base_price) - Decimal(deal_price)) / Decimal(base_price) * 100)


def compute_or_verify_discount(
    base_price: Decimal,
    deal_price: Decimal,
    discount_mode: DiscountMode | str,
    provided_percent: float | None,
    product_id: UUID | None = None,
) -> float | None:
    """Return the discount percentage to store for a line item.

    Percentage mode computes the percentage when it is missing (rounded to two
    decimals) and cross-checks it when provided. Flat-price mode passes the
    provided value through untouched.

    Raises:
        InconsistentDiscount: Percentage mode mismatch, or deal price above base price
    """
    if DiscountMode(discount_mode) is not DiscountMode.PERCENTAGE:
        return provided_percent

    calculated = calculate_discount_percent(base_price, deal_price)
    if calculated < 0:
        raise InconsistentDiscount(product_id, calculated, provided_percent)

    if provided_percent is None:
        return round(calculated, 2)

    if abs(calculated - provided_percent) >= DISCOUNT_TOLERANCE:
        raise InconsistentDiscount(product_id, calculated, provided_percent)
    return provided_percent
