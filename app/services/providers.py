# app/services/providers.py
"""Provider registry: profiles, the admin approval gate and the public marketplace listing."""
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.security import Actor
from app.db.models.category import Category
from app.db.models.enums import ApprovalStatus, Role
from app.db.models.provider import ServiceProvider
from app.db.models.user import User
from app.schemas.provider import ProviderRegister, ProviderUpdate
from app.services.common import atomic, load_provider, require_admin

logger = logging.getLogger(__name__)


def _active_categories(db: Session, category_ids: Iterable[int]) -> List[Category]:
    wanted = set(category_ids)
    cats = db.query(Category).filter(Category.id.in_(wanted), Category.is_active == True).all()  # noqa: E712
    if len(cats) != len(wanted):
        missing = sorted(wanted - {c.id for c in cats})
        raise ValidationError(f"Unknown or inactive categories: {missing}")
    return cats


def _own_profile(db: Session, actor: Actor) -> ServiceProvider:
    if actor.role != Role.PROVIDER:
        raise AuthorizationError("Providers only")
    provider = db.query(ServiceProvider).filter(ServiceProvider.user_id == actor.user_id).first()
    if not provider:
        raise NotFoundError("Provider profile not found")
    return provider


def register_provider(db: Session, actor: Actor, data: ProviderRegister) -> ServiceProvider:
    if actor.role != Role.PROVIDER:
        raise AuthorizationError("Only provider accounts can register a provider profile")

    user = db.query(User).filter(User.id == actor.user_id).first()
    if not user:
        raise NotFoundError("User not found")

    existing = db.query(ServiceProvider).filter(ServiceProvider.user_id == actor.user_id).first()
    if existing:
        raise ConflictError("Provider profile already exists")

    provider = ServiceProvider(
        user_id=user.id,
        city=data.city.strip(),
        description=data.description,
        experience_years=data.experience_years,
        hourly_rate=data.hourly_rate,
        credential_info=data.credential_info,
        is_available=True,
        approval_status=ApprovalStatus.PENDING,
    )
    with atomic(db):
        provider.categories = _active_categories(db, data.category_ids)
        db.add(provider)
    db.refresh(provider)
    logger.info("Provider %s registered by user %s (pending approval)", provider.id, user.id)
    return provider


def update_provider_profile(db: Session, actor: Actor, data: ProviderUpdate) -> ServiceProvider:
    """
    Apply a partial profile update. A new hourly rate only affects bookings
    created afterwards; existing bookings keep their frozen total_amount.
    """
    provider = _own_profile(db, actor)
    updates = data.model_dump(exclude_unset=True)
    category_ids = updates.pop("category_ids", None)

    with atomic(db):
        for field, value in updates.items():
            if value is None and field in ("city", "experience_years", "hourly_rate", "is_available"):
                continue
            setattr(provider, field, value)
        if category_ids is not None:
            provider.categories = _active_categories(db, category_ids)
    db.refresh(provider)
    logger.info("Provider %s updated fields %s", provider.id, sorted(updates) + (["categories"] if category_ids else []))
    return provider


def get_own_profile(db: Session, actor: Actor) -> ServiceProvider:
    return _own_profile(db, actor)


# --------------------------------------------------
# Approval gate (admin only, re-entrant)
# --------------------------------------------------
def _set_approval(db: Session, actor: Actor, provider_id: int, target: ApprovalStatus) -> ServiceProvider:
    require_admin(actor)
    with atomic(db):
        provider = load_provider(db, provider_id, for_update=True)
        previous = provider.approval_status
        if previous != target:
            provider.approval_status = target
    db.refresh(provider)
    if previous == target:
        logger.info("Provider %s already %s; nothing to do", provider_id, target.value)
    else:
        logger.info("Provider %s %s -> %s by admin %s", provider_id, previous.value, target.value, actor.user_id)
    return provider


def approve_provider(db: Session, actor: Actor, provider_id: int) -> ServiceProvider:
    return _set_approval(db, actor, provider_id, ApprovalStatus.APPROVED)


def reject_provider(db: Session, actor: Actor, provider_id: int) -> ServiceProvider:
    return _set_approval(db, actor, provider_id, ApprovalStatus.REJECTED)


def list_all_providers(
    db: Session,
    actor: Actor,
    approval_status: Optional[ApprovalStatus] = None,
    page: int = 1,
    per_page: int = 50,
) -> List[ServiceProvider]:
    require_admin(actor)
    q = db.query(ServiceProvider)
    if approval_status is not None:
        q = q.filter(ServiceProvider.approval_status == approval_status)
    offset = (page - 1) * per_page
    return q.order_by(ServiceProvider.id).offset(offset).limit(per_page).all()


# --------------------------------------------------
# Public marketplace
# --------------------------------------------------
def list_public_providers(
    db: Session,
    city: Optional[str] = None,
    category_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    per_page: int = 12,
) -> Tuple[int, List[ServiceProvider]]:
    """
    Providers a customer may see. Only APPROVED, available providers offering
    at least one category are returned, whatever the filters say.
    """
    if page < 1 or not 1 <= per_page <= 100:
        raise ValidationError("page must be >= 1 and per_page between 1 and 100")

    q = (
        db.query(ServiceProvider)
        .join(User, ServiceProvider.user_id == User.id)
        .filter(
            ServiceProvider.approval_status == ApprovalStatus.APPROVED,
            ServiceProvider.is_available == True,  # noqa: E712
            ServiceProvider.categories.any(),
        )
    )

    if city:
        q = q.filter(func.lower(ServiceProvider.city) == city.strip().lower())

    if category_id:
        q = q.filter(ServiceProvider.categories.any(Category.id == category_id))

    if search and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(or_(User.full_name.ilike(like), ServiceProvider.description.ilike(like)))

    total = q.count()
    offset = (page - 1) * per_page
    items = q.order_by(ServiceProvider.id).offset(offset).limit(per_page).all()
    return total, items


def get_public_provider(db: Session, provider_id: int) -> ServiceProvider:
    """Customers only ever see APPROVED providers; anything else is reported missing."""
    provider = db.query(ServiceProvider).filter(ServiceProvider.id == provider_id).first()
    if not provider or provider.approval_status != ApprovalStatus.APPROVED:
        raise NotFoundError("Provider not found")
    return provider


def get_provider_aggregate(db: Session, provider_id: int) -> dict:
    provider = get_public_provider(db, provider_id)
    return {
        "provider_id": provider.id,
        "avg_rating": float(provider.avg_rating or 0.0),
        "total_ratings": int(provider.total_ratings or 0),
    }
