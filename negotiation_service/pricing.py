from dataclasses import dataclass
from enum import Enum


class ServiceCategory(str, Enum):
    ELECTRICIAN = "Electrician"
    PLUMBER = "Plumber"
    AC_REPAIR = "AC Repair"
    CARPENTER = "Carpenter"
    PAINTER = "Painter"
    MAID = "Maid"
    CAR_WASH = "Car Wash"
    HAIRCUT = "Haircut"

    @classmethod
    def parse(cls, value: "str | ServiceCategory | None") -> "ServiceCategory | None":
        if isinstance(value, cls):
            return value
        key = (value or "").strip().lower()
        for category in cls:
            if category.value.lower() == key:
                return category
        return None


CORE_SERVICES = [
    ServiceCategory.ELECTRICIAN,
    ServiceCategory.PLUMBER,
    ServiceCategory.AC_REPAIR,
    ServiceCategory.CARPENTER,
    ServiceCategory.PAINTER,
]
STANDARD_SERVICES = [
    ServiceCategory.MAID,
    ServiceCategory.CAR_WASH,
    ServiceCategory.HAIRCUT,
]


@dataclass(frozen=True)
class PriceRange:
    min: int
    max: int

    def contains(self, price: int) -> bool:
        return self.min <= price <= self.max

    def clamp(self, price: int) -> int:
        return max(self.min, min(self.max, price))


GENERAL_TRADES_RANGE = PriceRange(500, 1500)
DEFAULT_RANGE = PriceRange(100, 2000)

PRICE_RANGES = {
    ServiceCategory.ELECTRICIAN: GENERAL_TRADES_RANGE,
    ServiceCategory.PLUMBER: GENERAL_TRADES_RANGE,
    ServiceCategory.CARPENTER: GENERAL_TRADES_RANGE,
    ServiceCategory.PAINTER: GENERAL_TRADES_RANGE,
    ServiceCategory.AC_REPAIR: PriceRange(1000, 1500),
    ServiceCategory.MAID: PriceRange(500, 800),
    ServiceCategory.CAR_WASH: PriceRange(100, 250),
    ServiceCategory.HAIRCUT: PriceRange(100, 250),
}


def price_range(category) -> PriceRange:
    """Allowed negotiation bounds; anything outside the catalogue gets the wide default."""
    parsed = ServiceCategory.parse(category)
    if parsed is None:
        return DEFAULT_RANGE
    return PRICE_RANGES[parsed]
