import logging
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import ensure_owner_or_admin, get_current_user, require_admin
from pitstop.core.errors import conflict, invalid_argument, not_found
from pitstop.core.schemas import ApiModel
from pitstop.database import get_db
from pitstop.models.booking import (
    ACTIVE_BOOKING_STATUSES,
    BOOKING_CANCELLED,
    BOOKING_PENDING,
    BOOKING_STATUSES,
    Booking,
)
from pitstop.models.payment import PAYMENT_COMPLETED, Payment
from pitstop.models.service import Service
from pitstop.models.user import User
from pitstop.services.availability import compute_availability, format_slot

router = APIRouter(tags=['bookings'])

logger = logging.getLogger(__name__)

MAX_BOOKING_NOTES_LENGTH = 600


class BookingCreateRequest(ApiModel):
    service_id: int
    date: date
    time: time
    notes: str | None = None

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0, tzinfo=None)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_BOOKING_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_BOOKING_NOTES_LENGTH} characters or fewer.')

        return normalized


class BookingStatusUpdateRequest(ApiModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in BOOKING_STATUSES:
            raise ValueError('Invalid booking status.')
        return normalized


class BookingResponse(ApiModel):
    id: int
    user_id: int
    service_id: int
    date: date
    time: time
    status: str
    notes: str | None = None
    created_at: datetime | None = None


def get_booking_or_404(booking_id: int, db: Session) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise not_found('Booking not found')
    return booking


@router.get('', response_model=list[BookingResponse])
def list_bookings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Booking)
    if not current_user.is_admin:
        query = query.filter(Booking.user_id == current_user.id)
    return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = db.query(Service).filter(Service.id == data.service_id).first()
    if not service:
        raise not_found('Service not found')
    if not service.is_active:
        raise invalid_argument('Service is not available for booking')

    existing_booking = db.query(Booking).filter(
        Booking.service_id == data.service_id,
        Booking.date == data.date,
        Booking.time == data.time,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
    ).first()
    if existing_booking:
        raise conflict('This time slot is already booked')

    availability = compute_availability(db, data.service_id, data.date)
    if format_slot(data.time) not in (availability.available_slots or []):
        raise invalid_argument(availability.reason or 'Selected time is not available')

    booking = Booking(
        user_id=current_user.id,
        service_id=data.service_id,
        date=data.date,
        time=data.time,
        notes=data.notes,
        status=BOOKING_PENDING,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)

    logger.info('Booking %s created for service %s on %s %s', booking.id, service.id, data.date, format_slot(data.time))
    return booking


@router.get('/{booking_id}', response_model=BookingResponse)
def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    booking = get_booking_or_404(booking_id, db)
    ensure_owner_or_admin(current_user, booking.user_id)
    return booking


@router.patch('/{booking_id}', response_model=BookingResponse)
def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    booking = get_booking_or_404(booking_id, db)
    booking.status = data.status
    db.commit()
    db.refresh(booking)

    logger.info('Booking %s set to %s by user %s', booking.id, data.status, current_user.id)
    return booking


@router.delete('/{booking_id}', response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    booking = get_booking_or_404(booking_id, db)
    ensure_owner_or_admin(current_user, booking.user_id)

    paid = db.query(Payment).filter(
        Payment.booking_id == booking.id,
        Payment.status == PAYMENT_COMPLETED,
    ).first()
    if paid:
        raise invalid_argument('Cannot cancel a paid booking')

    booking.status = BOOKING_CANCELLED
    db.commit()
    db.refresh(booking)

    logger.info('Booking %s cancelled by user %s', booking.id, current_user.id)
    return booking
