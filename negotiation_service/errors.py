class NegotiationError(Exception):
    """Base for failures that are reported back to the caller as structured results."""

    code = "negotiation_error"
    status_code = 400

    def __init__(self, detail: str, **extra):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail, **self.extra}


class PriceOutOfRange(NegotiationError):
    code = "price_out_of_range"
    status_code = 422

    def __init__(self, price: int, min_price: int, max_price: int, service_type: str | None = None):
        label = service_type or "this service"
        super().__init__(
            f"Price must be between ₹{min_price} and ₹{max_price} for {label}",
            price=price,
            min_price=min_price,
            max_price=max_price,
        )
        self.price = price
        self.min_price = min_price
        self.max_price = max_price


class BookingNotFound(NegotiationError):
    code = "booking_not_found"
    status_code = 404

    def __init__(self, booking_id: int):
        super().__init__("Booking not found", booking_id=booking_id)
        self.booking_id = booking_id


class TechnicianNotFound(NegotiationError):
    code = "technician_not_found"
    status_code = 404

    def __init__(self, technician_id: int):
        super().__init__("Technician not found", technician_id=technician_id)
        self.technician_id = technician_id


class UserNotFound(NegotiationError):
    code = "user_not_found"
    status_code = 404

    def __init__(self, user_id: int):
        super().__init__("User account not found", user_id=user_id)
        self.user_id = user_id


class SelfBookingForbidden(NegotiationError):
    code = "self_booking_forbidden"
    status_code = 403

    def __init__(self):
        super().__init__("Customer and technician must be different users")


class Unauthorized(NegotiationError):
    code = "unauthorized"
    status_code = 403

    def __init__(self, detail: str = "Access forbidden for this role"):
        super().__init__(detail)


class EstimatorUnavailable(NegotiationError):
    # recovered by the responder's fallback quote, never sent to users
    code = "estimator_unavailable"
    status_code = 503

    def __init__(self, reason: str):
        super().__init__(f"Cost estimator unavailable: {reason}")
        self.reason = reason
