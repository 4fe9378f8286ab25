"""
Append-only message transcript per booking.

Readers re-fetch the whole ordered list on every poll, so the query stays a
single indexed scan on (booking_id, created_at). Ties on created_at fall back
to the primary key, which follows insertion order.
"""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Message


async def append(db: AsyncSession, message: Message) -> Message:
    db.add(message)
    await db.flush()
    return message


async def append_text(db: AsyncSession, booking_id: int, sender_id: int, content: str) -> Message:
    return await append(db, Message(booking_id=booking_id, sender_id=sender_id, content=content))


async def list_by_booking(db: AsyncSession, booking_id: int) -> list[Message]:
    res = await db.execute(
        select(Message)
        .where(Message.booking_id == booking_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return list(res.scalars().all())


async def count_by_sender(db: AsyncSession, booking_id: int, sender_id: int, with_content: bool = False) -> int:
    query = select(func.count(Message.id)).where(
        Message.booking_id == booking_id,
        Message.sender_id == sender_id,
    )
    if with_content:
        query = query.where(Message.content.is_not(None), Message.content != "")
    res = await db.execute(query)
    return res.scalar_one()
