# app/api/routes/admin.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, List

from app.db.base import get_db
from app.db.models.enums import ApprovalStatus, BookingStatus, PaymentStatus
from app.schemas.admin import DashboardAdminResponse
from app.schemas.booking import BookingResponse
from app.schemas.provider import ProviderPublicResponse
from app.core.security import Actor, get_current_actor
from app.services import admin as admin_service
from app.services import bookings as booking_service
from app.services import providers as provider_service

router = APIRouter(prefix="/admin", tags=["admin"])


# --------------------------------------------------
# 1. Providers: list and approval gate
# --------------------------------------------------
@router.get("/providers", response_model=List[ProviderPublicResponse])
def list_providers(
    approval_status: Optional[ApprovalStatus] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return provider_service.list_all_providers(db, actor, approval_status, page=page, per_page=per_page)


@router.put("/providers/{provider_id}/approve", response_model=ProviderPublicResponse)
def approve_provider(
    provider_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return provider_service.approve_provider(db, actor, provider_id)


@router.put("/providers/{provider_id}/reject", response_model=ProviderPublicResponse)
def reject_provider(
    provider_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return provider_service.reject_provider(db, actor, provider_id)


# --------------------------------------------------
# 2. Bookings: read-only
# --------------------------------------------------
@router.get("/bookings", response_model=List[BookingResponse])
def admin_list_bookings(
    status: Optional[BookingStatus] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    rows = booking_service.list_all_bookings(
        db, actor, status=status, payment_status=payment_status, page=page, per_page=per_page
    )
    return [booking_service.to_response(b, actor) for b in rows]


# --------------------------------------------------
# 3. Admin summary (platform KPIs)
# --------------------------------------------------
@router.get("/summary", response_model=DashboardAdminResponse)
def admin_summary(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return admin_service.dashboard_stats(db, actor)
