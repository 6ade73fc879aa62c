# app/services/admin.py
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.security import Actor
from app.db.models.booking import Booking
from app.db.models.enums import ApprovalStatus, BookingStatus, PaymentStatus, Role
from app.db.models.provider import ServiceProvider
from app.db.models.user import User
from app.services.common import require_admin


def dashboard_stats(db: Session, actor: Actor) -> dict:
    require_admin(actor)

    total_users = db.query(func.count(User.id)).filter(User.role == Role.USER).scalar() or 0
    total_providers = db.query(func.count(ServiceProvider.id)).scalar() or 0
    pending = db.query(func.count(ServiceProvider.id)).filter(
        ServiceProvider.approval_status == ApprovalStatus.PENDING
    ).scalar() or 0
    total_bookings = db.query(func.count(Booking.id)).scalar() or 0
    active = db.query(func.count(Booking.id)).filter(
        Booking.status.in_([BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS])
    ).scalar() or 0
    completed = db.query(func.count(Booking.id)).filter(Booking.status == BookingStatus.COMPLETED).scalar() or 0
    collected = db.query(func.coalesce(func.sum(Booking.total_amount), 0)).filter(
        Booking.payment_status == PaymentStatus.PAID
    ).scalar() or 0

    return {
        "total_users": int(total_users),
        "total_providers": int(total_providers),
        "pending_provider_approvals": int(pending),
        "total_bookings": int(total_bookings),
        "active_bookings": int(active),
        "completed_bookings": int(completed),
        "total_collected": int(collected),
    }
