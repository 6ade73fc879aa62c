# app/services/common.py
from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.core.exceptions import AuthorizationError, NotFoundError
from app.core.security import Actor
from app.db.models.booking import Booking
from app.db.models.enums import Role
from app.db.models.provider import ServiceProvider


@contextmanager
def atomic(db: Session):
    """Commit on success; roll back and re-raise on any failure so no partial state is written."""
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def load_booking(db: Session, booking_id: int, for_update: bool = False) -> Booking:
    q = db.query(Booking).filter(Booking.id == booking_id)
    if for_update:
        # always re-read: another handler may have committed since this session last looked
        q = q.populate_existing().with_for_update()
    booking = q.first()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def load_provider(db: Session, provider_id: int, for_update: bool = False) -> ServiceProvider:
    q = db.query(ServiceProvider).filter(ServiceProvider.id == provider_id)
    if for_update:
        q = q.populate_existing().with_for_update()
    provider = q.first()
    if not provider:
        raise NotFoundError("Provider not found")
    return provider


def is_booking_customer(booking: Booking, actor: Actor) -> bool:
    return actor.role == Role.USER and booking.customer_id == actor.user_id


def is_booking_provider(booking: Booking, actor: Actor) -> bool:
    return (
        actor.role == Role.PROVIDER
        and booking.provider is not None
        and booking.provider.user_id == actor.user_id
    )


def require_admin(actor: Actor):
    if not actor.is_admin:
        raise AuthorizationError("Admin only")
