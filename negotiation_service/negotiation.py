"""
Booking lifecycle: negotiating -> confirmed.

Every mutating call is one unit of work on the session it is given: load the
booking (row-locked where the backend supports it), validate, write, commit.
A raised error leaves the session uncommitted, so callers that close the
session on failure see no partial update.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from . import ledger, responder
from .errors import BookingNotFound, PriceOutOfRange, SelfBookingForbidden, TechnicianNotFound
from .fees import platform_fee
from .models import Booking, BookingStatus, PaymentMethod, PaymentStatus, Technician
from .pricing import price_range

logger = logging.getLogger(__name__)


async def get_booking(db: AsyncSession, booking_id: int, for_update: bool = False) -> Booking:
    query = select(Booking).where(Booking.id == booking_id)
    if for_update:
        # overwrite any copy already in the identity map with the locked row
        query = query.with_for_update().execution_options(populate_existing=True)
    res = await db.execute(query)
    booking = res.scalar_one_or_none()
    if not booking:
        raise BookingNotFound(booking_id)
    return booking


async def get_technician(db: AsyncSession, technician_id: int) -> Technician:
    res = await db.execute(select(Technician).where(Technician.id == technician_id))
    technician = res.scalar_one_or_none()
    if not technician:
        raise TechnicianNotFound(technician_id)
    return technician


def validate_price(service_type: str, price: int) -> int:
    bounds = price_range(service_type)
    if not bounds.contains(price):
        raise PriceOutOfRange(price, bounds.min, bounds.max, service_type)
    return price


def apply_price(booking: Booking, price: int, is_confirm: bool) -> Booking:
    """Write price, fee and status together; the fee never drifts from the price."""
    validate_price(booking.service_type, price)
    booking.negotiated_price = price
    booking.platform_fee = platform_fee(price)
    booking.status = BookingStatus.CONFIRMED.value if is_confirm else BookingStatus.NEGOTIATING.value
    booking.seeded_price = False
    return booking


def opening_price(service_type: str, base_charge: int | None) -> int:
    bounds = price_range(service_type)
    if base_charge is None:
        return bounds.min
    return bounds.clamp(base_charge)


async def create_booking(
    db: AsyncSession,
    customer_id: int,
    technician_id: int,
    service_type: str | None = None,
) -> Booking:
    technician = await get_technician(db, technician_id)
    if technician.user_id == customer_id:
        raise SelfBookingForbidden()

    service_type = (service_type or technician.skills or "").strip()
    price = opening_price(service_type, technician.base_charge)

    booking = Booking(
        customer_id=customer_id,
        technician_id=technician.id,
        service_type=service_type,
        status=BookingStatus.NEGOTIATING.value,
        negotiated_price=price,
        platform_fee=platform_fee(price),
        seeded_price=True,
        insurance_applied=True,
        payment_status=PaymentStatus.PENDING.value,
    )
    db.add(booking)
    await db.flush()

    greeting = responder.greeting()
    await ledger.append_text(db, booking.id, technician.user_id, greeting.content)
    await db.commit()

    logger.info("booking %s created for technician %s at %s", booking.id, technician.id, price)
    return booking


async def propose_price(db: AsyncSession, booking_id: int, price: int, is_confirm: bool = False) -> Booking:
    booking = await get_booking(db, booking_id, for_update=True)
    apply_price(booking, price, is_confirm)
    await db.commit()

    logger.info("booking %s price %s status %s", booking.id, price, booking.status)
    return booking


async def accept_current_price(db: AsyncSession, booking_id: int) -> Booking:
    booking = await get_booking(db, booking_id, for_update=True)
    # the stored price is re-checked against the range like any other proposal
    apply_price(booking, booking.negotiated_price, is_confirm=True)
    await db.commit()

    logger.info("booking %s accepted at %s", booking.id, booking.negotiated_price)
    return booking


async def record_payment(db: AsyncSession, booking_id: int, method: str, paid: bool) -> Booking:
    method = PaymentMethod(method).value
    booking = await get_booking(db, booking_id, for_update=True)
    booking.payment_method = method
    booking.payment_status = PaymentStatus.PAID.value if paid else PaymentStatus.PENDING.value
    await db.commit()

    logger.info("booking %s payment %s/%s", booking.id, method, booking.payment_status)
    return booking
