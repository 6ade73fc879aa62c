# app/db/models/address.py
from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base


class Address(Base):
    # owned by the address book; bookings only check ownership
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    line = Column(String, nullable=False)
    city = Column(String, nullable=False)
    pincode = Column(String, nullable=True)

    user = relationship("User", back_populates="addresses")
