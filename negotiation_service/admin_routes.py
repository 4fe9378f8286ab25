from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_db
from .errors import TechnicianNotFound
from .models import Booking, BookingStatus, Technician, User
from .publisher import publisher
from .rbac import require_role
from .routes import technician_view
from .schemas import AdminStats, TechnicianResponse
from .security import Actor, get_current_user

router = APIRouter(prefix="/admin")


@router.get("/stats", response_model=AdminStats)
async def stats(actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    require_role(actor, ["admin"])

    user_count = (await db.execute(select(func.count(User.id)))).scalar_one()
    booking_count = (await db.execute(select(func.count(Booking.id)))).scalar_one()
    revenue = (
        await db.execute(
            select(func.sum(Booking.platform_fee)).where(Booking.status == BookingStatus.CONFIRMED.value)
        )
    ).scalar_one()
    pending_techs = (
        await db.execute(select(func.count(Technician.id)).where(Technician.is_verified.is_(False)))
    ).scalar_one()

    return AdminStats(
        user_count=user_count,
        booking_count=booking_count,
        revenue=Decimal(str(revenue or 0)),
        pending_techs=pending_techs,
    )


@router.get("/technicians", response_model=list[TechnicianResponse])
async def list_all_technicians(actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    require_role(actor, ["admin"])

    res = await db.execute(select(Technician).order_by(Technician.id))
    return [await technician_view(db, t) for t in res.scalars().all()]


@router.post("/technicians/{technician_id}/verify", response_model=TechnicianResponse)
async def verify_technician(
    technician_id: int,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_role(actor, ["admin"])

    technician = await db.get(Technician, technician_id)
    if not technician:
        raise TechnicianNotFound(technician_id)

    technician.is_verified = True
    await db.commit()

    await publisher.publish_event(
        "technician.verified",
        {"technician_id": technician.id, "user_id": technician.user_id},
    )
    return await technician_view(db, technician)
