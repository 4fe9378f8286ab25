"""
Auto-responder bridge: plays the technician's side of the chat.

It reacts to two customer actions, the first descriptive message (answered
with an estimator-driven quote) and a counter-offer below the current price
(answered by the concession strategy in responder.py).
"""
import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from . import ledger, responder
from .config import ESTIMATOR_TIMEOUT_SECONDS
from .estimator import CostEstimator
from .models import Booking, BookingStatus, Message, Technician
from .negotiation import apply_price, get_booking, get_technician, propose_price, validate_price
from .pricing import price_range

logger = logging.getLogger(__name__)


@dataclass
class NegotiationOutcome:
    booking: Booking
    reply: Message | None = None


@dataclass
class SendOutcome:
    message: Message
    reply: Message | None = None


async def _estimate_reply(
    booking: Booking,
    technician: Technician,
    description: str,
    estimator: CostEstimator,
    timeout: float,
) -> responder.Reply:
    bounds = price_range(booking.service_type)
    try:
        estimate = await asyncio.wait_for(
            estimator.estimate(booking.service_type, description, technician.district),
            timeout=timeout,
        )
        return responder.quote_reply(estimate.estimated_range, estimate.explanation, estimate.tips, bounds)
    except Exception as e:
        # timeouts, transport errors and unusable estimates all get the same fallback
        logger.warning("estimator failed for booking %s, quoting range minimum: %s", booking.id, e)
        return responder.fallback_quote(booking.service_type, bounds)


async def reply_with_first_quote(
    db: AsyncSession,
    booking_id: int,
    description: str,
    estimator: CostEstimator,
    timeout: float = ESTIMATOR_TIMEOUT_SECONDS,
) -> Message | None:
    booking = await get_booking(db, booking_id)
    technician = await get_technician(db, booking.technician_id)

    # end the read transaction so no connection is held while the estimator runs
    await db.commit()
    reply = await _estimate_reply(booking, technician, description, estimator, timeout)

    booking = await get_booking(db, booking_id, for_update=True)
    if not booking.seeded_price or booking.status != BookingStatus.NEGOTIATING.value:
        # someone proposed a price while the estimator was running
        return None

    apply_price(booking, reply.price, is_confirm=False)
    message = await ledger.append_text(db, booking.id, technician.user_id, reply.content)
    await db.commit()

    logger.info("booking %s first quote %s (%s)", booking.id, reply.price, reply.kind.value)
    return message


async def send_message(
    db: AsyncSession,
    booking_id: int,
    sender_id: int,
    estimator: CostEstimator,
    content: str | None = None,
    attachment_url: str | None = None,
    attachment_type: str | None = None,
) -> SendOutcome:
    booking = await get_booking(db, booking_id)

    message = await ledger.append(
        db,
        Message(
            booking_id=booking.id,
            sender_id=sender_id,
            content=content,
            attachment_url=attachment_url,
            attachment_type=attachment_type,
        ),
    )
    await db.commit()

    wants_quote = (
        sender_id == booking.customer_id
        and bool((content or "").strip())
        and booking.status == BookingStatus.NEGOTIATING.value
        and booking.seeded_price
    )
    if not wants_quote:
        return SendOutcome(message)

    descriptive = await ledger.count_by_sender(db, booking.id, sender_id, with_content=True)
    if descriptive != 1:
        return SendOutcome(message)

    reply = await reply_with_first_quote(db, booking.id, content, estimator)
    return SendOutcome(message, reply)


async def reply_to_counter_offer(db: AsyncSession, booking_id: int, counter_price: int) -> NegotiationOutcome:
    booking = await get_booking(db, booking_id, for_update=True)
    technician = await get_technician(db, booking.technician_id)
    validate_price(booking.service_type, counter_price)

    reply = responder.counter_reply(booking.negotiated_price, counter_price, technician.district)
    apply_price(booking, reply.price, is_confirm=False)
    message = await ledger.append_text(db, booking.id, technician.user_id, reply.content)
    await db.commit()

    logger.info(
        "booking %s counter %s answered with %s (%s)",
        booking.id, counter_price, reply.price, reply.kind.value,
    )
    return NegotiationOutcome(booking, message)


def resolve_confirm(booking: Booking, actor_id: int, price: int, confirm: bool | None) -> bool:
    """
    Explicit confirm flag wins. Without one, a customer re-submitting the price
    already on the table is taken as acceptance.
    """
    if confirm is not None:
        return confirm
    return actor_id == booking.customer_id and price == booking.negotiated_price


async def negotiate(
    db: AsyncSession,
    booking_id: int,
    actor_id: int,
    price: int,
    confirm: bool | None = None,
) -> NegotiationOutcome:
    booking = await get_booking(db, booking_id)
    is_confirm = resolve_confirm(booking, actor_id, price, confirm)

    is_counter = (
        actor_id == booking.customer_id
        and not is_confirm
        and booking.negotiated_price is not None
        and price < booking.negotiated_price
    )
    if is_counter:
        return await reply_to_counter_offer(db, booking.id, price)

    booking = await propose_price(db, booking.id, price, is_confirm)
    return NegotiationOutcome(booking)
