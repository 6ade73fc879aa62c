# app/schemas/payment.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from app.db.models.enums import PaymentMethod


# Returned by "Pay Now"; the client shows its payment form from this
class PaymentOrderResponse(BaseModel):
    order_id: str
    booking_id: int
    amount: int
    currency: str
    provider_name: Optional[str]
    category_name: Optional[str]
    scheduled_at: datetime


# Only the fields of the chosen method are read
class ProcessPaymentRequest(BaseModel):
    booking_id: int
    method: PaymentMethod

    # UPI
    upi_id: Optional[str] = None

    # Card: number/cvv are validated then dropped, only last 4 digits are kept
    card_number: Optional[str] = None
    card_expiry: Optional[str] = None
    card_cvv: Optional[str] = None
    card_holder_name: Optional[str] = None
    card_network: Optional[str] = None

    # Net banking
    bank_name: Optional[str] = None

    # Wallet
    wallet_id: Optional[str] = None


class PaymentResponse(BaseModel):
    transaction_id: Optional[str] = None
    booking_id: int
    amount: int
    status: str  # SUCCESS / FAILED / REFUNDED / NOT_PAID
    method: Optional[PaymentMethod] = None
    paid_at: Optional[datetime] = None
    message: Optional[str] = None
