"""
Scripted technician replies.

Each strategy is a pure function returning a Reply; the bridge decides when
to call them and persists the result. A Reply with a price means the
technician is putting that price on the table (never a confirmation).
"""
import math
import re
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction

from .errors import EstimatorUnavailable
from .pricing import PriceRange

# counter-offers up to this percentage below the current price are accepted as-is
CONCESSION_THRESHOLD_PERCENT = 15

_NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")


class ReplyKind(str, Enum):
    GREETING = "greeting"
    QUOTE = "quote"
    FALLBACK_QUOTE = "fallback_quote"
    AGREE = "agree"
    COUNTER = "counter"


@dataclass(frozen=True)
class Reply:
    kind: ReplyKind
    content: str
    price: int | None = None


def greeting() -> Reply:
    return Reply(
        ReplyKind.GREETING,
        "Hello! How can I help you today? Please describe the problem and I will share a quote.",
    )


def suggest_price(estimated_range: str) -> int:
    """Midpoint of the first two numbers in an estimate like "₹1,200 - ₹1,800", or the single number."""
    numbers = [float(n.replace(",", "")) for n in _NUMBER_RE.findall(estimated_range or "")]
    if not numbers:
        raise EstimatorUnavailable(f"no price in estimate {estimated_range!r}")
    if len(numbers) == 1:
        return int(numbers[0])
    return math.floor((numbers[0] + numbers[1]) / 2)


def quote_reply(estimated_range: str, explanation: str, tips: str, bounds: PriceRange) -> Reply:
    price = bounds.clamp(suggest_price(estimated_range))
    parts = [f"Thanks for the details. I can do this job for ₹{price}."]
    if explanation:
        parts.append(explanation)
    if tips:
        parts.append(f"Tip: {tips}")
    return Reply(ReplyKind.QUOTE, " ".join(parts), price)


def fallback_quote(service_type: str, bounds: PriceRange) -> Reply:
    return Reply(
        ReplyKind.FALLBACK_QUOTE,
        f"Sorry, I couldn't work out an exact estimate right now. My starting price for "
        f"{service_type} is ₹{bounds.min}; we can adjust once I see the work.",
        bounds.min,
    )


def percent_diff(current_price: int, counter_price: int) -> Fraction:
    # exact rational: no float rounding at the threshold
    return Fraction(current_price - counter_price, current_price) * 100


def counter_reply(current_price: int, counter_price: int, district: str | None) -> Reply:
    if percent_diff(current_price, counter_price) <= CONCESSION_THRESHOLD_PERCENT:
        return Reply(
            ReplyKind.AGREE,
            f"Alright, I agree to ₹{counter_price}. It's a fair price for the work. "
            f"You can proceed to confirm the booking now.",
            counter_price,
        )

    middle_ground = math.floor((current_price + counter_price) / 2)
    return Reply(
        ReplyKind.COUNTER,
        f"₹{counter_price} is a bit low considering the effort and travel to {district or 'your area'}. "
        f"How about we settle at ₹{middle_ground}? This is my best offer.",
        middle_ground,
    )
