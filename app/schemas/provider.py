# app/schemas/provider.py
from pydantic import BaseModel, Field, conint, conlist, constr
from typing import List, Optional

from app.db.models.enums import ApprovalStatus


class CategoryMiniResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


# Provider creates their marketplace profile
class ProviderRegister(BaseModel):
    city: constr(min_length=1)
    description: Optional[constr(max_length=1000)] = None
    experience_years: conint(ge=0) = 0
    hourly_rate: conint(gt=0) = Field(..., description="Whole currency units per hour")
    credential_info: Optional[str] = None
    category_ids: conlist(int, min_length=1)


# Provider edits their profile; only sent fields change
class ProviderUpdate(BaseModel):
    city: Optional[constr(min_length=1)] = None
    description: Optional[constr(max_length=1000)] = None
    experience_years: Optional[conint(ge=0)] = None
    hourly_rate: Optional[conint(gt=0)] = None
    credential_info: Optional[str] = None
    is_available: Optional[bool] = None
    category_ids: Optional[conlist(int, min_length=1)] = None


class ProviderPublicResponse(BaseModel):
    id: int
    user_id: int
    full_name: Optional[str]
    email: Optional[str] = None
    phone: Optional[str] = None
    city: str
    description: Optional[str]
    experience_years: int
    hourly_rate: int
    avg_rating: float
    total_ratings: int
    is_available: bool
    approval_status: ApprovalStatus
    categories: List[CategoryMiniResponse] = []

    class Config:
        from_attributes = True


class ProviderListResponse(BaseModel):
    total: int
    page: int
    per_page: int
    items: List[ProviderPublicResponse]


class ProviderAggregateResponse(BaseModel):
    provider_id: int
    avg_rating: float
    total_ratings: int
