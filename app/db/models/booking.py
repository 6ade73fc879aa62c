from sqlalchemy import Boolean, Column, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.db.types import UTCDateTime
from app.db.models.enums import BookingStatus, PaymentStatus


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)

    scheduled_at = Column(UTCDateTime, nullable=False)
    notes = Column(String(500), nullable=True)

    # copied from the provider's hourly rate at creation, never recomputed
    total_amount = Column(Integer, nullable=False)

    status = Column(Enum(BookingStatus, native_enum=False), nullable=False, default=BookingStatus.PENDING)
    payment_status = Column(Enum(PaymentStatus, native_enum=False), nullable=False, default=PaymentStatus.PENDING)
    credentials_revealed = Column(Boolean, nullable=False, default=False)

    order_ref = Column(String, unique=True, nullable=True)
    paid_at = Column(UTCDateTime, nullable=True)
    refunded_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    # relationships
    customer = relationship("User", foreign_keys=[customer_id])
    provider = relationship("ServiceProvider", foreign_keys=[provider_id])
    category = relationship("Category", foreign_keys=[category_id])
    address = relationship("Address", foreign_keys=[address_id])
    transactions = relationship(
        "PaymentTransaction",
        back_populates="booking",
        order_by="PaymentTransaction.id",
    )
