# app/schemas/review.py
from pydantic import BaseModel, Field, StrictInt, constr
from typing import List, Optional
from datetime import datetime


# Range is checked by the review gate so it answers with a validation_error body
class ReviewCreate(BaseModel):
    booking_id: int
    rating: StrictInt = Field(..., description="Whole stars, 1 to 5")
    comment: Optional[constr(max_length=1000)] = None


class ReviewResponse(BaseModel):
    id: int
    booking_id: int
    provider_id: int
    customer_id: int
    customer_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProviderReviewsResponse(BaseModel):
    provider_id: int
    avg_rating: float
    total_ratings: int
    reviews: List[ReviewResponse]
