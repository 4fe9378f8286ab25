from .errors import Unauthorized
from .models import Booking, Technician


def require_role(actor, allowed_roles: list[str]):
    if not actor.roles:
        raise Unauthorized("Roles missing in token")

    if not actor.has_role(*allowed_roles):
        raise Unauthorized("Access forbidden for this role")


def is_participant(actor, booking: Booking, technician: Technician) -> bool:
    return actor.id in (booking.customer_id, technician.user_id)


def require_participant(actor, booking: Booking, technician: Technician):
    if actor.is_admin or is_participant(actor, booking, technician):
        return
    raise Unauthorized("Not a participant of this booking")


def require_customer(actor, booking: Booking):
    if actor.is_admin or actor.id == booking.customer_id:
        return
    raise Unauthorized("Only the booking's customer can do this")
