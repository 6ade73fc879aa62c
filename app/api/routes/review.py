# app/api/routes/review.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.review import ReviewCreate, ReviewResponse
from app.core.security import Actor, get_current_actor
from app.services import reviews as review_service

router = APIRouter(prefix="/reviews", tags=["reviews"])

# Create review (customer of a completed, paid booking)
@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(review_in: ReviewCreate, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return review_service.submit_review(db, actor, review_in.booking_id, review_in.rating, review_in.comment)
