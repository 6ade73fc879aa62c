# app/db/models/provider.py
from sqlalchemy import (
    Boolean, CheckConstraint, Column, Enum, Float, ForeignKey, Integer, String, Table, func,
)
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.db.types import UTCDateTime
from app.db.models.enums import ApprovalStatus

provider_categories = Table(
    "provider_categories",
    Base.metadata,
    Column("provider_id", Integer, ForeignKey("service_providers.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class ServiceProvider(Base):
    __tablename__ = "service_providers"
    __table_args__ = (
        CheckConstraint("hourly_rate > 0"),
        CheckConstraint("experience_years >= 0"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    city = Column(String, nullable=False, index=True)
    description = Column(String(1000), nullable=True)
    experience_years = Column(Integer, nullable=False, default=0)
    hourly_rate = Column(Integer, nullable=False)  # whole currency units

    # license number, certificate id, direct contact... shown only after disclosure
    credential_info = Column(String, nullable=True)

    is_available = Column(Boolean, nullable=False, default=True)
    approval_status = Column(
        Enum(ApprovalStatus, native_enum=False), nullable=False, default=ApprovalStatus.PENDING, index=True
    )

    avg_rating = Column(Float, nullable=False, default=0.0)
    total_ratings = Column(Integer, nullable=False, default=0)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    user = relationship("User", back_populates="provider_profile", lazy="joined", innerjoin=True)
    categories = relationship(
        "Category",
        secondary=provider_categories,
        back_populates="providers",
        lazy="selectin"
    )

    @property
    def full_name(self):
        return self.user.full_name if self.user else None

    @property
    def is_bookable(self) -> bool:
        return (
            self.approval_status == ApprovalStatus.APPROVED
            and bool(self.is_available)
            and len(self.categories or []) > 0
        )

    @property
    def email(self):
        return self.user.email if self.user else None

    @property
    def phone(self):
        return self.user.phone if self.user else None
