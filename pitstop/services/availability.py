"""
Booking availability for one service on one calendar date.

A slot is offered when:
  - the date is not a holiday,
  - the weekday has business hours and is not marked closed,
  - the slot starts inside [open_time, close_time),
  - no PENDING or CONFIRMED booking of the service already holds it.

Slots start at open_time and repeat every SLOT_INTERVAL_MINUTES. Nothing is
stored; the result is recomputed from the database on every call.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable

from sqlalchemy.orm import Session

from pitstop.core import config
from pitstop.core.errors import not_found
from pitstop.core.schemas import ApiModel
from pitstop.models.booking import ACTIVE_BOOKING_STATUSES, Booking
from pitstop.models.business_hour import BusinessHour
from pitstop.models.holiday import Holiday
from pitstop.models.service import Service

HOLIDAY_REASON = "Holiday"
CLOSED_REASON = "Business is closed on this day"

# Both ends of the business day are anchored on this date before stepping.
REFERENCE_DATE = date(1970, 1, 1)


class BusinessHoursWindow(ApiModel):
    open: str
    close: str


class AvailabilityResult(ApiModel):
    is_available: bool
    available_slots: list[str] | None = None
    business_hours: BusinessHoursWindow | None = None
    reason: str | None = None


def format_slot(value: time) -> str:
    return value.strftime("%H:%M")


def weekday_index(target_date: date, week_start: str | None = None) -> int:
    """Day-of-week number used to key BusinessHour rows."""
    week_start = week_start or config.WEEK_START
    if week_start == "monday":
        return target_date.weekday()
    # 0 = Sunday .. 6 = Saturday
    return target_date.isoweekday() % 7


def generate_slots(open_time: time, close_time: time, interval_minutes: int | None = None) -> list[time]:
    interval_minutes = interval_minutes or config.SLOT_INTERVAL_MINUTES
    if interval_minutes <= 0:
        raise ValueError("Slot interval must be a positive number of minutes.")
    step = timedelta(minutes=interval_minutes)
    current = datetime.combine(REFERENCE_DATE, open_time.replace(second=0, microsecond=0))
    end = datetime.combine(REFERENCE_DATE, close_time.replace(second=0, microsecond=0))

    slots: list[time] = []
    while current < end:
        slots.append(current.time())
        current += step
    return slots


def filter_available_slots(
    open_time: time,
    close_time: time,
    occupied: Iterable[time],
    interval_minutes: int | None = None,
) -> list[str]:
    occupied_slots = {format_slot(value) for value in occupied}
    return [
        format_slot(slot)
        for slot in generate_slots(open_time, close_time, interval_minutes)
        if format_slot(slot) not in occupied_slots
    ]


def get_occupied_times(db: Session, service_id: int, target_date: date) -> list[time]:
    rows = db.query(Booking.time).filter(
        Booking.service_id == service_id,
        Booking.date == target_date,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
    ).all()
    return [booked_time for (booked_time,) in rows]


def compute_availability(
    db: Session,
    service_id: int,
    target_date: date,
    week_start: str | None = None,
    interval_minutes: int | None = None,
) -> AvailabilityResult:
    service = db.query(Service).filter(Service.id == service_id).first()
    if service is None:
        raise not_found("Service not found")

    holiday = db.query(Holiday).filter(Holiday.date == target_date).first()
    if holiday is not None:
        return AvailabilityResult(is_available=False, reason=HOLIDAY_REASON)

    business_hour = db.query(BusinessHour).filter(
        BusinessHour.day_of_week == weekday_index(target_date, week_start),
    ).first()
    if business_hour is None or business_hour.is_closed:
        return AvailabilityResult(is_available=False, reason=CLOSED_REASON)

    available_slots = filter_available_slots(
        business_hour.open_time,
        business_hour.close_time,
        get_occupied_times(db, service_id, target_date),
        interval_minutes,
    )

    return AvailabilityResult(
        is_available=len(available_slots) > 0,
        available_slots=available_slots,
        business_hours=BusinessHoursWindow(
            open=format_slot(business_hour.open_time),
            close=format_slot(business_hour.close_time),
        ),
    )
