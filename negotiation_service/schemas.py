from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from .fees import format_fee
from .models import AttachmentType, PaymentMethod


class CreateTechnician(BaseModel):
    skills: str
    experience: int = Field(default=0, ge=0)
    district: str
    base_charge: Optional[int] = Field(default=None, ge=0)
    bio: Optional[str] = None


class TechnicianResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: Optional[str] = None
    phone: Optional[str] = None
    skills: str
    experience: int
    district: str
    is_verified: bool
    base_charge: Optional[int] = None
    rating: float
    bio: Optional[str] = None


class CreateBookingRequest(BaseModel):
    technician_id: int
    service_type: Optional[str] = None


class BookingResponse(BaseModel):
    booking_id: int
    customer_id: int
    technician_id: int
    technician_name: Optional[str] = None
    district: Optional[str] = None
    service_type: str
    status: str
    negotiated_price: Optional[int] = None
    platform_fee: Optional[Decimal] = None
    min_price: int
    max_price: int
    insurance_applied: bool
    payment_method: Optional[str] = None
    payment_status: str
    created_at: datetime

    @field_serializer("platform_fee")
    def _fee_two_places(self, fee: Optional[Decimal]):
        return None if fee is None else format_fee(fee)


class SendMessageRequest(BaseModel):
    content: Optional[str] = None
    attachment_url: Optional[str] = None
    attachment_type: Optional[AttachmentType] = None

    @model_validator(mode="after")
    def _content_or_attachment(self):
        if self.content is not None:
            self.content = self.content.strip() or None
        if bool(self.attachment_url) != bool(self.attachment_type):
            raise ValueError("attachment_url and attachment_type must be given together")
        if not self.content and not self.attachment_url:
            raise ValueError("A message needs content or an attachment")
        return self


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_id: int
    sender_id: int
    content: Optional[str] = None
    attachment_url: Optional[str] = None
    attachment_type: Optional[str] = None
    created_at: datetime


class SendMessageResponse(BaseModel):
    message: MessageResponse
    reply: Optional[MessageResponse] = None


class NegotiateRequest(BaseModel):
    price: int = Field(ge=0)
    confirm: Optional[bool] = None


class NegotiateResponse(BaseModel):
    booking: BookingResponse
    reply: Optional[MessageResponse] = None


class PaymentRequest(BaseModel):
    method: PaymentMethod
    paid: bool = True


class AdminStats(BaseModel):
    user_count: int
    booking_count: int
    revenue: Decimal
    pending_techs: int

    @field_serializer("revenue")
    def _revenue_two_places(self, revenue: Decimal):
        return format_fee(revenue)
