from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.booking import BookingCreate, BookingResponse
from app.core.security import Actor, get_current_actor
from app.services import bookings as booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])

# Customer creates booking

@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking: BookingCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    new_booking = booking_service.create_booking(
        db,
        actor,
        provider_id=booking.provider_id,
        category_id=booking.category_id,
        address_id=booking.address_id,
        scheduled_at=booking.scheduled_at,
        notes=booking.notes,
    )
    return booking_service.to_response(new_booking, actor)



# Customer views their bookings

@router.get("/customer/me", response_model=list[BookingResponse])
def customer_my_bookings(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    bookings = booking_service.list_customer_bookings(db, actor, page=page, per_page=per_page)
    return [booking_service.to_response(b, actor) for b in bookings]



# Provider views their bookings

@router.get("/provider/me", response_model=list[BookingResponse])
def provider_my_bookings(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    bookings = booking_service.list_provider_bookings(db, actor, page=page, per_page=per_page)
    return [booking_service.to_response(b, actor) for b in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    booking = booking_service.get_booking(db, actor, booking_id)
    return booking_service.to_response(booking, actor)


# accept / reject / start / complete (provider), cancel (customer)

@router.post("/{booking_id}/{action}", response_model=BookingResponse)
def transition_booking(
    booking_id: int,
    action: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    booking = booking_service.transition(db, booking_id, actor, action)
    return booking_service.to_response(booking, actor)
