# app/services/reviews.py
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import AuthorizationError, ConflictError, InvalidStateError, ValidationError
from app.core.locks import provider_lock
from app.core.security import Actor
from app.db.models.enums import BookingStatus, PaymentStatus
from app.db.models.provider import ServiceProvider
from app.db.models.review import Review
from app.services.common import atomic, is_booking_customer, load_booking, load_provider

logger = logging.getLogger(__name__)


def can_review(booking) -> bool:
    return booking.status == BookingStatus.COMPLETED and booking.payment_status == PaymentStatus.PAID


def _apply_rating(provider: ServiceProvider, rating: int):
    # incremental mean; if reviews ever become editable, recompute from the reviews table instead
    count = int(provider.total_ratings or 0)
    avg = float(provider.avg_rating or 0.0)
    provider.avg_rating = (avg * count + rating) / (count + 1)
    provider.total_ratings = count + 1


def submit_review(db: Session, actor: Actor, booking_id: int, rating: int, comment: Optional[str] = None) -> Review:
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be an integer from 1 to 5")

    booking = load_booking(db, booking_id)
    if not is_booking_customer(booking, actor):
        raise AuthorizationError("Booking does not belong to you")
    if not can_review(booking):
        raise InvalidStateError("Can only review completed and paid bookings")

    with provider_lock(booking.provider_id):
        with atomic(db):
            existing = db.query(Review).filter(Review.booking_id == booking.id).first()
            if existing:
                raise ConflictError("Review for this booking already exists")

            provider = load_provider(db, booking.provider_id, for_update=True)
            review = Review(
                booking_id=booking.id,
                customer_id=actor.user_id,
                provider_id=provider.id,
                rating=rating,
                comment=comment,
            )
            db.add(review)
            try:
                db.flush()
            except IntegrityError as exc:
                raise ConflictError("Review for this booking already exists") from exc

            _apply_rating(provider, rating)
        db.refresh(review)

    logger.info(
        "Review %s for booking %s: provider %s now %.2f over %s ratings",
        review.id, booking.id, provider.id, provider.avg_rating, provider.total_ratings,
    )
    return review


def list_provider_reviews(db: Session, provider_id: int, limit: int = 50) -> List[Review]:
    load_provider(db, provider_id)
    return (
        db.query(Review)
        .filter(Review.provider_id == provider_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(limit)
        .all()
    )
