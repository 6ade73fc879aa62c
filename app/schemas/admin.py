# app/schemas/admin.py
from pydantic import BaseModel


class DashboardAdminResponse(BaseModel):
    total_users: int
    total_providers: int
    pending_provider_approvals: int
    total_bookings: int
    active_bookings: int
    completed_bookings: int
    total_collected: int

    class Config:
        from_attributes = True
