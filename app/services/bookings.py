# app/services/bookings.py
"""
Booking engine.

Owns the booking state machine:

    PENDING     --accept-->   CONFIRMED      (provider)
    PENDING     --reject-->   REJECTED       (provider)
    PENDING     --cancel-->   CANCELLED      (customer, unpaid only)
    CONFIRMED   --start-->    IN_PROGRESS    (provider)
    IN_PROGRESS --complete--> COMPLETED      (provider)

COMPLETED, CANCELLED and REJECTED are terminal. Admins only read.
Every transition runs under the booking's lock and commits once, so two
racing actions on the same booking can never both succeed.
"""
import enum
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.core.locks import booking_lock
from app.core.security import Actor
from app.db.models.address import Address
from app.db.models.booking import Booking
from app.db.models.category import Category
from app.db.models.enums import TERMINAL_STATUSES, ApprovalStatus, BookingStatus, PaymentStatus, Role
from app.db.models.provider import ServiceProvider
from app.db.models.user import User
from app.schemas.booking import BookingResponse
from app.services.common import (
    atomic,
    is_booking_customer,
    is_booking_provider,
    load_booking,
    require_admin,
)
from app.services.disclosure import apply_disclosure, visible_credentials

logger = logging.getLogger(__name__)


class BookingAction(str, enum.Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


# action -> (who may do it, required current status, resulting status)
TRANSITIONS = {
    BookingAction.ACCEPT: (Role.PROVIDER, BookingStatus.PENDING, BookingStatus.CONFIRMED),
    BookingAction.REJECT: (Role.PROVIDER, BookingStatus.PENDING, BookingStatus.REJECTED),
    BookingAction.START: (Role.PROVIDER, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS),
    BookingAction.COMPLETE: (Role.PROVIDER, BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED),
    BookingAction.CANCEL: (Role.USER, BookingStatus.PENDING, BookingStatus.CANCELLED),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _bookable_or_raise(provider: ServiceProvider):
    if provider.is_bookable:
        return
    if provider.approval_status != ApprovalStatus.APPROVED:
        raise ValidationError("Provider is not approved yet")
    if not provider.is_available:
        raise ValidationError("Provider is not accepting bookings right now")
    if not provider.categories:
        raise ValidationError("Provider does not offer any service category")


def create_booking(
    db: Session,
    actor: Actor,
    *,
    provider_id: int,
    category_id: int,
    address_id: int,
    scheduled_at: datetime,
    notes: Optional[str] = None,
) -> Booking:
    """
    Create a PENDING booking priced at the provider's current hourly rate.
    No payment is started here; the customer initiates payment separately.
    """
    if actor.role != Role.USER:
        raise AuthorizationError("Only customers can create bookings")

    customer = db.query(User).filter(User.id == actor.user_id).first()
    if not customer:
        raise NotFoundError("User not found")

    provider = db.query(ServiceProvider).filter(ServiceProvider.id == provider_id).first()
    if not provider:
        raise NotFoundError("Provider not found")

    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise NotFoundError("Category not found")

    address = db.query(Address).filter(Address.id == address_id).first()
    if not address:
        raise NotFoundError("Address not found")

    _bookable_or_raise(provider)

    if not category.is_active or category.id not in {c.id for c in provider.categories}:
        raise ValidationError("Provider does not offer this category")

    if address.user_id != actor.user_id:
        raise ValidationError("Address does not belong to this user")

    if scheduled_at.tzinfo is None or scheduled_at.utcoffset() is None:
        raise ValidationError("scheduled_at must include a timezone")
    if scheduled_at <= _utcnow():
        raise ValidationError("scheduled_at must be in the future")

    booking = Booking(
        customer_id=customer.id,
        provider_id=provider.id,
        category_id=category.id,
        address_id=address.id,
        scheduled_at=scheduled_at.astimezone(timezone.utc),
        notes=notes,
        total_amount=provider.hourly_rate,
        status=BookingStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        credentials_revealed=False,
    )
    with atomic(db):
        db.add(booking)
    db.refresh(booking)

    logger.info(
        "Booking %s created: customer=%s provider=%s amount=%s",
        booking.id, customer.id, provider.id, booking.total_amount,
    )
    return booking


def _authorize_action(booking: Booking, actor: Actor, role: Role, action: BookingAction):
    if role == Role.PROVIDER and not is_booking_provider(booking, actor):
        raise AuthorizationError(f"Only the booking's provider can {action.value} it")
    if role == Role.USER and not is_booking_customer(booking, actor):
        raise AuthorizationError(f"Only the booking's customer can {action.value} it")


def transition(db: Session, booking_id: int, actor: Actor, action) -> Booking:
    try:
        action = BookingAction(action)
    except ValueError:
        raise ValidationError(f"Unknown booking action '{action}'")

    role, from_status, to_status = TRANSITIONS[action]

    with booking_lock(booking_id):
        with atomic(db):
            booking = load_booking(db, booking_id, for_update=True)
            _authorize_action(booking, actor, role, action)

            if booking.status in TERMINAL_STATUSES:
                raise InvalidTransitionError(f"Booking is {booking.status.value}; no further changes")
            if booking.status != from_status:
                raise InvalidTransitionError(
                    f"Cannot {action.value} a booking that is {booking.status.value}"
                )
            if action == BookingAction.CANCEL and booking.payment_status == PaymentStatus.PAID:
                raise ConflictError("Booking is paid; it must be refunded before it can be cancelled")

            booking.status = to_status
            apply_disclosure(booking)
        db.refresh(booking)

    logger.info(
        "Booking %s %s -> %s (%s by user %s)",
        booking.id, from_status.value, to_status.value, action.value, actor.user_id,
    )
    return booking


# --------------------------------------------------
# Reads
# --------------------------------------------------
def get_booking(db: Session, actor: Actor, booking_id: int) -> Booking:
    booking = load_booking(db, booking_id)
    if not (actor.is_admin or is_booking_customer(booking, actor) or is_booking_provider(booking, actor)):
        raise AuthorizationError("Not your booking")
    return booking


def _page(q, page: int, per_page: int):
    if page < 1 or not 1 <= per_page <= 200:
        raise ValidationError("page must be >= 1 and per_page between 1 and 200")
    offset = (page - 1) * per_page
    return q.order_by(Booking.created_at.desc(), Booking.id.desc()).offset(offset).limit(per_page).all()


def list_customer_bookings(db: Session, actor: Actor, page: int = 1, per_page: int = 20) -> List[Booking]:
    if actor.role != Role.USER:
        raise AuthorizationError("Customers only")
    return _page(db.query(Booking).filter(Booking.customer_id == actor.user_id), page, per_page)


def list_provider_bookings(db: Session, actor: Actor, page: int = 1, per_page: int = 20) -> List[Booking]:
    if actor.role != Role.PROVIDER:
        raise AuthorizationError("Providers only")
    provider = db.query(ServiceProvider).filter(ServiceProvider.user_id == actor.user_id).first()
    if not provider:
        raise NotFoundError("Provider profile not found")
    return _page(db.query(Booking).filter(Booking.provider_id == provider.id), page, per_page)


def list_all_bookings(
    db: Session,
    actor: Actor,
    status: Optional[BookingStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    page: int = 1,
    per_page: int = 50,
) -> List[Booking]:
    require_admin(actor)
    q = db.query(Booking)
    if status is not None:
        q = q.filter(Booking.status == status)
    if payment_status is not None:
        q = q.filter(Booking.payment_status == payment_status)
    return _page(q, page, per_page)


def to_response(booking: Booking, actor: Actor) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        customer_id=booking.customer_id,
        provider_id=booking.provider_id,
        provider_name=booking.provider.full_name if booking.provider else None,
        category_id=booking.category_id,
        category_name=booking.category.name if booking.category else None,
        address_id=booking.address_id,
        scheduled_at=booking.scheduled_at,
        notes=booking.notes,
        status=booking.status,
        payment_status=booking.payment_status,
        total_amount=booking.total_amount,
        credentials_revealed=bool(booking.credentials_revealed),
        credential_info=visible_credentials(booking, actor),
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )
