from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from . import bridge, ledger, negotiation
from .db import get_db
from .errors import UserNotFound
from .estimator import CostEstimator, get_estimator
from .events import booking_event_data
from .models import Booking, BookingStatus, Technician, User
from .pricing import price_range
from .publisher import publisher
from .rbac import require_customer, require_participant, require_role
from .schemas import (
    BookingResponse,
    CreateBookingRequest,
    CreateTechnician,
    MessageResponse,
    NegotiateRequest,
    NegotiateResponse,
    PaymentRequest,
    SendMessageRequest,
    SendMessageResponse,
    TechnicianResponse,
)
from .security import Actor, get_current_user

router = APIRouter()


async def technician_view(db: AsyncSession, technician: Technician) -> TechnicianResponse:
    user = await db.get(User, technician.user_id)
    view = TechnicianResponse.model_validate(technician)
    if user:
        view.name = user.name
        view.phone = user.phone
    return view


async def booking_view(db: AsyncSession, booking: Booking, technician: Technician | None = None) -> BookingResponse:
    technician = technician or await negotiation.get_technician(db, booking.technician_id)
    user = await db.get(User, technician.user_id)
    bounds = price_range(booking.service_type)

    return BookingResponse(
        booking_id=booking.id,
        customer_id=booking.customer_id,
        technician_id=booking.technician_id,
        technician_name=user.name if user else None,
        district=technician.district,
        service_type=booking.service_type,
        status=booking.status,
        negotiated_price=booking.negotiated_price,
        platform_fee=booking.platform_fee,
        min_price=bounds.min,
        max_price=bounds.max,
        insurance_applied=booking.insurance_applied,
        payment_method=booking.payment_method,
        payment_status=booking.payment_status,
        created_at=booking.created_at,
    )


async def load_for_participant(db: AsyncSession, booking_id: int, actor: Actor) -> tuple[Booking, Technician]:
    booking = await negotiation.get_booking(db, booking_id)
    technician = await negotiation.get_technician(db, booking.technician_id)
    require_participant(actor, booking, technician)
    return booking, technician


# ================= TECHNICIANS =================

@router.get("/technicians", response_model=list[TechnicianResponse])
async def list_technicians(
    district: str | None = None,
    service: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    query = select(Technician).where(Technician.is_verified.is_(True))
    if district:
        query = query.where(Technician.district == district)
    if service:
        query = query.where(Technician.skills.ilike(f"%{service}%"))

    res = await db.execute(query.order_by(Technician.id))
    return [await technician_view(db, t) for t in res.scalars().all()]


@router.post("/technicians", response_model=TechnicianResponse)
async def register_technician(
    data: CreateTechnician,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_role(actor, ["technician"])

    if not await db.get(User, actor.id):
        raise UserNotFound(actor.id)

    res = await db.execute(select(Technician).where(Technician.user_id == actor.id))
    if res.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Technician profile already exists")

    technician = Technician(
        user_id=actor.id,
        skills=data.skills,
        experience=data.experience,
        district=data.district,
        base_charge=data.base_charge,
        bio=data.bio,
        is_verified=False,
    )
    db.add(technician)
    await db.commit()

    return await technician_view(db, technician)


# ================= BOOKINGS =================

@router.post("/bookings", response_model=BookingResponse)
async def create_booking(
    data: CreateBookingRequest,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_role(actor, ["customer", "admin"])

    booking = await negotiation.create_booking(db, actor.id, data.technician_id, data.service_type)
    await publisher.publish_event("booking.created", booking_event_data(booking))

    return await booking_view(db, booking)


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    booking, technician = await load_for_participant(db, booking_id, actor)
    return await booking_view(db, booking, technician)


@router.get("/bookings/{booking_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    booking_id: int,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await load_for_participant(db, booking_id, actor)
    return await ledger.list_by_booking(db, booking_id)


@router.post("/bookings/{booking_id}/messages", response_model=SendMessageResponse)
async def send_message(
    booking_id: int,
    data: SendMessageRequest,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    estimator: CostEstimator = Depends(get_estimator),
):
    await load_for_participant(db, booking_id, actor)

    outcome = await bridge.send_message(
        db,
        booking_id,
        actor.id,
        estimator,
        content=data.content,
        attachment_url=data.attachment_url,
        attachment_type=data.attachment_type.value if data.attachment_type else None,
    )
    if outcome.reply:
        booking = await negotiation.get_booking(db, booking_id)
        await publisher.publish_event("booking.price_proposed", booking_event_data(booking))

    return SendMessageResponse(
        message=MessageResponse.model_validate(outcome.message),
        reply=MessageResponse.model_validate(outcome.reply) if outcome.reply else None,
    )


@router.post("/bookings/{booking_id}/negotiate", response_model=NegotiateResponse)
async def negotiate(
    booking_id: int,
    data: NegotiateRequest,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _, technician = await load_for_participant(db, booking_id, actor)

    outcome = await bridge.negotiate(db, booking_id, actor.id, data.price, data.confirm)
    event_type = (
        "booking.confirmed"
        if outcome.booking.status == BookingStatus.CONFIRMED.value
        else "booking.price_proposed"
    )
    await publisher.publish_event(event_type, booking_event_data(outcome.booking))

    return NegotiateResponse(
        booking=await booking_view(db, outcome.booking, technician),
        reply=MessageResponse.model_validate(outcome.reply) if outcome.reply else None,
    )


@router.post("/bookings/{booking_id}/accept", response_model=BookingResponse)
async def accept_current_price(
    booking_id: int,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    booking, technician = await load_for_participant(db, booking_id, actor)
    require_customer(actor, booking)

    booking = await negotiation.accept_current_price(db, booking_id)
    await publisher.publish_event("booking.confirmed", booking_event_data(booking))

    return await booking_view(db, booking, technician)


@router.post("/bookings/{booking_id}/payment", response_model=BookingResponse)
async def record_payment(
    booking_id: int,
    data: PaymentRequest,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    booking, technician = await load_for_participant(db, booking_id, actor)
    require_customer(actor, booking)

    booking = await negotiation.record_payment(db, booking_id, data.method.value, data.paid)
    await publisher.publish_event("booking.payment_recorded", booking_event_data(booking))

    return await booking_view(db, booking, technician)
