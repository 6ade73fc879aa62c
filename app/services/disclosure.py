# app/services/disclosure.py
"""
Credential disclosure policy.

A provider's credential text becomes visible to the customer of a booking
once that booking is CONFIRMED and PAID. The flag latches: later moves to
IN_PROGRESS or COMPLETED (or a refund) never hide the credentials again.
"""
from typing import Optional

from app.core.security import Actor
from app.db.models.booking import Booking
from app.db.models.enums import BookingStatus, PaymentStatus, Role


def should_reveal(booking: Booking) -> bool:
    return booking.status == BookingStatus.CONFIRMED and booking.payment_status == PaymentStatus.PAID


def apply_disclosure(booking: Booking) -> bool:
    if not booking.credentials_revealed and should_reveal(booking):
        booking.credentials_revealed = True
    return bool(booking.credentials_revealed)


def visible_credentials(booking: Booking, actor: Actor) -> Optional[str]:
    if not booking.credentials_revealed or actor.role != Role.USER or booking.customer_id != actor.user_id:
        return None
    return booking.provider.credential_info if booking.provider else None
