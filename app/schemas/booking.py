from pydantic import BaseModel, Field, constr
from datetime import datetime
from typing import Optional

from app.db.models.enums import BookingStatus, PaymentStatus


# --- CREATE ---
class BookingCreate(BaseModel):
    provider_id: int
    category_id: int
    address_id: int
    scheduled_at: datetime = Field(..., description="Timezone-aware ISO datetime in the future")
    notes: Optional[constr(max_length=500)] = None


# --- RESPONSE ---
class BookingResponse(BaseModel):
    id: int
    customer_id: int
    provider_id: int
    provider_name: Optional[str] = None
    category_id: int
    category_name: Optional[str] = None
    address_id: int
    scheduled_at: datetime
    notes: Optional[str]
    status: BookingStatus
    payment_status: PaymentStatus
    total_amount: int
    credentials_revealed: bool
    credential_info: Optional[str] = None  # only for the customer, once revealed
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
