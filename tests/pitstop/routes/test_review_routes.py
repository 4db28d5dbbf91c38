from datetime import date, time

import pytest
from pydantic import ValidationError

from pitstop.core.errors import ApiError, ErrorKind
from pitstop.models.booking import Booking
from pitstop.routes.review_routes import (
    ReviewCreateRequest,
    ReviewUpdateRequest,
    create_review,
    delete_review,
    list_reviews,
    list_service_reviews,
    update_review,
)


def add_booking(db, user, service, status: str = 'COMPLETED', booked_time: time = time(9, 0)) -> Booking:
    booking = Booking(user_id=user.id, service_id=service.id, date=date(2026, 1, 5), time=booked_time, status=status)
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def review(db, user, booking, rating: int = 5, comment: str | None = None):
    return create_review(
        data=ReviewCreateRequest(booking_id=booking.id, rating=rating, comment=comment),
        current_user=user,
        db=db,
    )


def test_review_rating_must_be_between_one_and_five() -> None:
    with pytest.raises(ValidationError):
        ReviewCreateRequest(booking_id=1, rating=6)
    with pytest.raises(ValidationError):
        ReviewCreateRequest(booking_id=1, rating=0)


def test_create_review_takes_service_from_completed_booking(db, customer_user, oil_change) -> None:
    booking = add_booking(db, customer_user, oil_change)

    created = review(db, customer_user, booking, rating=4, comment='  Quick and tidy ')

    assert created.service_id == oil_change.id
    assert created.user_id == customer_user.id
    assert created.comment == 'Quick and tidy'


def test_create_review_requires_own_completed_booking(db, customer_user, other_customer, oil_change) -> None:
    pending = add_booking(db, customer_user, oil_change, status='PENDING')
    completed = add_booking(db, customer_user, oil_change, booked_time=time(10, 0))

    with pytest.raises(ApiError) as not_completed:
        review(db, customer_user, pending)
    with pytest.raises(ApiError) as not_owner:
        review(db, other_customer, completed)

    assert not_completed.value.kind is ErrorKind.NOT_FOUND
    assert not_completed.value.message == 'Booking not found or not completed'
    assert not_owner.value.kind is ErrorKind.NOT_FOUND


def test_create_review_once_per_booking(db, customer_user, oil_change) -> None:
    booking = add_booking(db, customer_user, oil_change)
    review(db, customer_user, booking)

    with pytest.raises(ApiError) as exception_info:
        review(db, customer_user, booking, rating=1)

    assert exception_info.value.kind is ErrorKind.INVALID_ARGUMENT
    assert exception_info.value.message == 'Review already exists for this booking'


def test_service_reviews_report_rounded_average(db, customer_user, other_customer, oil_change) -> None:
    review(db, customer_user, add_booking(db, customer_user, oil_change), rating=5)
    review(db, customer_user, add_booking(db, customer_user, oil_change, booked_time=time(10, 0)), rating=4)
    review(db, other_customer, add_booking(db, other_customer, oil_change, booked_time=time(11, 0)), rating=4)

    summary = list_service_reviews(service_id=oil_change.id, db=db)
    by_user = list_reviews(page=1, limit=10, service_id=None, user_id=other_customer.id, db=db)

    assert summary.total_reviews == 3
    assert summary.average_rating == 4.3
    assert [item.rating for item in by_user.reviews] == [4]


def test_service_reviews_empty_and_unknown_service(db, oil_change) -> None:
    summary = list_service_reviews(service_id=oil_change.id, db=db)

    assert summary.average_rating == 0.0
    assert summary.reviews == []
    with pytest.raises(ApiError) as exception_info:
        list_service_reviews(service_id=999, db=db)
    assert exception_info.value.kind is ErrorKind.NOT_FOUND


def test_only_author_updates_review_but_admin_may_delete(db, admin_user, customer_user, other_customer, oil_change) -> None:
    created = review(db, customer_user, add_booking(db, customer_user, oil_change), rating=3)

    with pytest.raises(ApiError) as stranger:
        update_review(review_id=created.id, data=ReviewUpdateRequest(rating=1), current_user=other_customer, db=db)
    with pytest.raises(ApiError) as admin_edit:
        update_review(review_id=created.id, data=ReviewUpdateRequest(rating=1), current_user=admin_user, db=db)
    updated = update_review(
        review_id=created.id,
        data=ReviewUpdateRequest(rating=4, comment='Better on second look'),
        current_user=customer_user,
        db=db,
    )
    deleted = delete_review(review_id=created.id, current_user=admin_user, db=db)

    assert stranger.value.kind is ErrorKind.FORBIDDEN
    assert admin_edit.value.kind is ErrorKind.FORBIDDEN
    assert updated.rating == 4
    assert updated.comment == 'Better on second look'
    assert deleted.message == 'Review deleted successfully'
