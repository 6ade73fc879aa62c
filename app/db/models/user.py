# app/db/models/user.py
from sqlalchemy import Column, Enum, Integer, String, func
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.db.types import UTCDateTime
from app.db.models.enums import Role


class User(Base):
    """
    Identity record mirrored from the auth service.
    Passwords and sessions live there; we only keep what bookings reference.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    role = Column(Enum(Role, native_enum=False), nullable=False, default=Role.USER)

    created_at = Column(UTCDateTime, server_default=func.now())

    provider_profile = relationship("ServiceProvider", back_populates="user", uselist=False)
    addresses = relationship("Address", back_populates="user", lazy="selectin")
