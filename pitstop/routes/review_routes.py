from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field, field_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import ensure_owner_or_admin, get_current_user
from pitstop.core.audit import log_action
from pitstop.core.errors import forbidden, invalid_argument, not_found
from pitstop.core.schemas import ApiModel, MessageResponse, Pagination, paginate
from pitstop.database import get_db
from pitstop.models.booking import BOOKING_COMPLETED, Booking
from pitstop.models.review import Review
from pitstop.models.user import User
from pitstop.routes.service_routes import get_service_or_404

router = APIRouter(tags=['reviews'])
service_reviews_router = APIRouter(tags=['reviews'])


def normalize_comment(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class ReviewCreateRequest(ApiModel):
    booking_id: int
    rating: int = Field(ge=1, le=5)
    comment: str | None = None

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, value: str | None) -> str | None:
        return normalize_comment(value)


class ReviewUpdateRequest(ApiModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    comment: str | None = None

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, value: str | None) -> str | None:
        return normalize_comment(value)


class ReviewResponse(ApiModel):
    id: int
    user_id: int
    booking_id: int
    service_id: int
    rating: int
    comment: str | None = None
    created_at: datetime | None = None


class ReviewListResponse(ApiModel):
    reviews: list[ReviewResponse]
    pagination: Pagination


class ServiceReviewsResponse(ApiModel):
    reviews: list[ReviewResponse]
    average_rating: float
    total_reviews: int


def get_review_or_404(review_id: int, db: Session) -> Review:
    review = db.query(Review).filter(Review.id == review_id).first()
    if not review:
        raise not_found('Review not found')
    return review


def average_rating(reviews: list[Review]) -> float:
    if not reviews:
        return 0.0
    return round(sum(review.rating for review in reviews) / len(reviews), 1)


@router.get('', response_model=ReviewListResponse)
def list_reviews(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    service_id: int | None = Query(default=None, alias='serviceId'),
    user_id: int | None = Query(default=None, alias='userId'),
    db: Session = Depends(get_db),
):
    query = db.query(Review)
    if service_id is not None:
        query = query.filter(Review.service_id == service_id)
    if user_id is not None:
        query = query.filter(Review.user_id == user_id)

    reviews, pagination = paginate(query.order_by(Review.created_at.desc(), Review.id.desc()), page, limit)
    return ReviewListResponse(reviews=reviews, pagination=pagination)


@router.post('', response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    data: ReviewCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    booking = db.query(Booking).filter(
        Booking.id == data.booking_id,
        Booking.user_id == current_user.id,
        Booking.status == BOOKING_COMPLETED,
    ).first()
    if not booking:
        raise not_found('Booking not found or not completed')

    if db.query(Review).filter(Review.booking_id == booking.id).first():
        raise invalid_argument('Review already exists for this booking')

    review = Review(
        user_id=current_user.id,
        booking_id=booking.id,
        service_id=booking.service_id,
        rating=data.rating,
        comment=data.comment,
    )
    db.add(review)
    db.commit()
    db.refresh(review)

    log_action('REVIEW_CREATED', f'booking={booking.id} rating={data.rating}', current_user.id)
    return review


@router.get('/{review_id}', response_model=ReviewResponse)
def get_review(review_id: int, db: Session = Depends(get_db)):
    return get_review_or_404(review_id, db)


@router.patch('/{review_id}', response_model=ReviewResponse)
def update_review(
    review_id: int,
    data: ReviewUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    review = get_review_or_404(review_id, db)
    # Only the author may reword a review.
    if review.user_id != current_user.id:
        raise forbidden()

    for field_name, value in data.model_dump(exclude_unset=True).items():
        if field_name == 'rating' and value is None:
            continue
        setattr(review, field_name, value)

    db.commit()
    db.refresh(review)

    log_action('REVIEW_UPDATED', str(review.id), current_user.id)
    return review


@router.delete('/{review_id}', response_model=MessageResponse)
def delete_review(
    review_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    review = get_review_or_404(review_id, db)
    ensure_owner_or_admin(current_user, review.user_id)

    db.delete(review)
    db.commit()

    log_action('REVIEW_DELETED', str(review_id), current_user.id)
    return MessageResponse(message='Review deleted successfully')


@service_reviews_router.get('/{service_id}/reviews', response_model=ServiceReviewsResponse)
def list_service_reviews(service_id: int, db: Session = Depends(get_db)):
    get_service_or_404(service_id, db)
    reviews = (
        db.query(Review)
        .filter(Review.service_id == service_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )
    return ServiceReviewsResponse(
        reviews=reviews,
        average_rating=average_rating(reviews),
        total_reviews=len(reviews),
    )
