from decimal import Decimal

import pytest

from negotiation_service.fees import format_fee, platform_fee, platform_fee_rate


@pytest.mark.parametrize(
    "price, rate",
    [
        (0, "2.5"),
        (249, "2.5"),
        (250, "3.0"),
        (279, "3.0"),
        (280, "2.73"),
        (281, "3.0"),
        (289, "3.0"),
        (290, "2.93"),
        (295, "2.93"),
        (299, "2.93"),
        (300, "3.0"),
        (450, "3.0"),
        (451, "5.0"),
        (700, "5.0"),
        (701, "8.0"),
        (1000, "8.0"),
        (1001, "10.0"),
        (1500, "10.0"),
        (1501, "12.0"),
        (10000, "12.0"),
    ],
)
def test_rate_tiers(price, rate):
    assert platform_fee_rate(price) == Decimal(rate)


@pytest.mark.parametrize(
    "price, fee",
    [
        (249, "6.225"),
        (250, "7.5"),
        (280, "7.644"),
        (289, "8.67"),
        (290, "8.497"),
        (299, "8.7607"),
        (300, "9"),
        (450, "13.5"),
        (451, "22.55"),
        (700, "35"),
        (701, "56.08"),
        (1000, "80"),
        (1001, "100.1"),
        (1100, "110"),
        (1200, "120"),
        (1500, "150"),
        (1501, "180.12"),
    ],
)
def test_fee_is_whole_price_times_rate(price, fee):
    assert platform_fee(price) == Decimal(fee)


def test_fee_is_not_marginal():
    # 1501 is charged 12% on the whole amount, not 12% on the single rupee above 1500
    assert platform_fee(1501) > platform_fee(1500) + 1


def test_negative_price_is_rejected():
    with pytest.raises(ValueError):
        platform_fee(-1)


def test_format_fee_two_places():
    assert format_fee(platform_fee(1200)) == "120.00"
    assert format_fee(platform_fee(280)) == "7.64"
