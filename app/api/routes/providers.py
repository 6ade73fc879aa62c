# app/api/routes/providers.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from app.core.security import Actor, get_current_actor
from app.db.base import get_db
from app.schemas.provider import (
    ProviderAggregateResponse,
    ProviderListResponse,
    ProviderPublicResponse,
    ProviderRegister,
    ProviderUpdate,
)
from app.schemas.review import ProviderReviewsResponse
from app.services import providers as provider_service
from app.services import reviews as review_service

router = APIRouter(prefix="/providers", tags=["providers"])


# Public marketplace listing: approved + available providers only
@router.get("", response_model=ProviderListResponse)
def list_providers(
    city: Optional[str] = Query(None),
    category_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="Matches provider name or description"),
    page: int = Query(1, ge=1),
    per_page: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db),
):
    total, items = provider_service.list_public_providers(
        db, city=city, category_id=category_id, search=search, page=page, per_page=per_page
    )
    return ProviderListResponse(
        total=total,
        page=page,
        per_page=per_page,
        items=[ProviderPublicResponse.model_validate(p) for p in items],
    )


# Provider's own profile

@router.post("/me", response_model=ProviderPublicResponse, status_code=status.HTTP_201_CREATED)
def register_profile(
    payload: ProviderRegister,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return provider_service.register_provider(db, actor, payload)


@router.get("/me", response_model=ProviderPublicResponse)
def my_profile(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return provider_service.get_own_profile(db, actor)


@router.put("/me", response_model=ProviderPublicResponse)
def update_profile(
    payload: ProviderUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return provider_service.update_provider_profile(db, actor, payload)


@router.get("/{provider_id}", response_model=ProviderPublicResponse)
def get_provider(provider_id: int, db: Session = Depends(get_db)):
    return provider_service.get_public_provider(db, provider_id)


@router.get("/{provider_id}/rating", response_model=ProviderAggregateResponse)
def get_provider_rating(provider_id: int, db: Session = Depends(get_db)):
    return provider_service.get_provider_aggregate(db, provider_id)


@router.get("/{provider_id}/reviews", response_model=ProviderReviewsResponse)
def list_provider_reviews(
    provider_id: int,
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    summary = provider_service.get_provider_aggregate(db, provider_id)
    summary["reviews"] = review_service.list_provider_reviews(db, provider_id, limit=limit)
    return summary
