# app/db/models/payment.py
from sqlalchemy import Column, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.db.types import UTCDateTime
from app.db.models.enums import PaymentMethod, TransactionOutcome


class PaymentTransaction(Base):
    """
    One row per payment attempt. Rows are written once and never updated;
    a refund changes the booking's payment_status, not the transaction.
    Only masked instrument details are stored (no card number, no CVV).
    """
    __tablename__ = "payment_transactions"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    transaction_ref = Column(String, nullable=False, unique=True)

    amount = Column(Integer, nullable=False)
    method = Column(Enum(PaymentMethod, native_enum=False), nullable=False)
    outcome = Column(Enum(TransactionOutcome, native_enum=False), nullable=False)
    failure_reason = Column(String, nullable=True)

    # UPI
    upi_id = Column(String, nullable=True)
    # Card
    card_last4 = Column(String(4), nullable=True)
    card_network = Column(String, nullable=True)
    card_holder_name = Column(String, nullable=True)
    # Net banking
    bank_name = Column(String, nullable=True)
    # Wallet
    wallet_id = Column(String, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())

    booking = relationship("Booking", back_populates="transactions")
