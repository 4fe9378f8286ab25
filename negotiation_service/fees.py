"""
Platform fee tiers.

The rate applies to the whole price, not marginally. Prices 280 and 290-299
carry their own rates inside the 3% tier.
"""
from decimal import Decimal

PRICE_280_RATE = Decimal("2.73")
PRICE_290S_RATE = Decimal("2.93")


def platform_fee_rate(price: int) -> Decimal:
    """Fee percentage for a price in whole rupees."""
    if price < 0:
        raise ValueError(f"price must be non-negative, got {price}")

    if price < 250:
        return Decimal("2.5")
    if price <= 450:
        if price == 280:
            return PRICE_280_RATE
        if 290 <= price <= 299:
            return PRICE_290S_RATE
        return Decimal("3.0")
    if price <= 700:
        return Decimal("5.0")
    if price <= 1000:
        return Decimal("8.0")
    if price <= 1500:
        return Decimal("10.0")
    return Decimal("12.0")


def platform_fee(price: int) -> Decimal:
    return Decimal(price) * platform_fee_rate(price) / 100


def format_fee(fee: Decimal) -> str:
    return f"{fee:.2f}"
