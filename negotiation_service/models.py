from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, Numeric, String, Text

from .db import Base


def utcnow():
    return datetime.now(timezone.utc)


class BookingStatus(str, Enum):
    PENDING = "pending"  # reserved, not entered by the negotiation flow
    NEGOTIATING = "negotiating"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    ONLINE = "online"
    COD = "cod"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class AttachmentType(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"


class Role(str, Enum):
    CUSTOMER = "customer"
    TECHNICIAN = "technician"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    role = Column(String, nullable=False, default=Role.CUSTOMER.value)
    phone = Column(String, nullable=True)
    location = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Technician(Base):
    __tablename__ = "technicians"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    skills = Column(String, nullable=False)
    experience = Column(Integer, nullable=False, default=0)
    district = Column(String, nullable=False, index=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    base_charge = Column(Integer, nullable=True)
    rating = Column(Float, nullable=False, default=5.0)
    bio = Column(Text, nullable=True)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)

    customer_id = Column(Integer, nullable=False, index=True)
    technician_id = Column(Integer, ForeignKey("technicians.id"), nullable=False, index=True)
    service_type = Column(String, nullable=False)

    status = Column(String, nullable=False, index=True, default=BookingStatus.NEGOTIATING.value)
    negotiated_price = Column(Integer, nullable=True)
    platform_fee = Column(Numeric(12, 4), nullable=True)
    # true until someone proposes a price other than the technician's base charge
    seeded_price = Column(Boolean, nullable=False, default=True)
    insurance_applied = Column(Boolean, nullable=False, default=True)

    payment_method = Column(String, nullable=True)
    payment_status = Column(String, nullable=False, default=PaymentStatus.PENDING.value)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_booking_id_created_at", "booking_id", "created_at"),)

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False)
    sender_id = Column(Integer, nullable=False)
    content = Column(Text, nullable=True)
    attachment_url = Column(String, nullable=True)
    attachment_type = Column(String, nullable=True)  # image/document
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
