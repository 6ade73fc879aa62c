# app/api/routes/payments.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.security import Actor, get_current_actor
from app.db.base import get_db
from app.schemas.booking import BookingResponse
from app.schemas.payment import PaymentOrderResponse, PaymentResponse, ProcessPaymentRequest
from app.services import bookings as booking_service
from app.services import payments as payment_service
from app.services.payment_gateway import PaymentGateway, get_gateway

router = APIRouter(prefix="/payments", tags=["payments"])


# Step 1: get order details before showing the payment form
@router.post("/initiate/{booking_id}", response_model=PaymentOrderResponse)
def initiate(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return payment_service.initiate_payment(db, actor, booking_id)


# Step 2: submit payment details and get the result
@router.post("/process", response_model=PaymentResponse)
def process(
    req: ProcessPaymentRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    gateway: PaymentGateway = Depends(get_gateway),
):
    payload = req.model_dump(exclude={"booking_id", "method"}, exclude_none=True)
    return payment_service.process_payment(db, actor, req.booking_id, req.method, payload, gateway=gateway)


@router.post("/{booking_id}/refund", response_model=BookingResponse)
def refund(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    booking = payment_service.refund_payment(db, actor, booking_id)
    return booking_service.to_response(booking, actor)


@router.get("/booking/{booking_id}", response_model=PaymentResponse)
def payment_status(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return payment_service.get_payment_status(db, actor, booking_id)
