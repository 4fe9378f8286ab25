import json
import uuid
from datetime import datetime, timezone


def build_event(event_type: str, data: dict) -> dict:
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


def to_json(event: dict) -> str:
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False, default=str)


def booking_event_data(booking) -> dict:
    return {
        "booking_id": booking.id,
        "customer_id": booking.customer_id,
        "technician_id": booking.technician_id,
        "service_type": booking.service_type,
        "status": booking.status,
        "negotiated_price": booking.negotiated_price,
        "platform_fee": None if booking.platform_fee is None else str(booking.platform_fee),
        "payment_method": booking.payment_method,
        "payment_status": booking.payment_status,
    }
