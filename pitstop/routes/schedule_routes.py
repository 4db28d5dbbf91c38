from datetime import date, time

from fastapi import APIRouter, Depends, status
from pydantic import Field, field_validator, model_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import require_admin
from pitstop.core.audit import log_action
from pitstop.core.errors import conflict, not_found
from pitstop.core.schemas import ApiModel, MessageResponse
from pitstop.database import get_db
from pitstop.models.business_hour import BusinessHour
from pitstop.models.holiday import Holiday
from pitstop.models.user import User

business_hours_router = APIRouter(tags=['business-hours'])
holidays_router = APIRouter(tags=['holidays'])


class BusinessHourEntry(ApiModel):
    day_of_week: int = Field(ge=0, le=6)
    open_time: time
    close_time: time
    is_closed: bool


class BusinessHoursUpdateRequest(ApiModel):
    business_hours: list[BusinessHourEntry]

    @model_validator(mode='after')
    def validate_unique_days(self):
        days = [entry.day_of_week for entry in self.business_hours]
        if len(days) != len(set(days)):
            raise ValueError('Each day of the week may appear only once.')
        return self


class BusinessHourResponse(ApiModel):
    id: int
    day_of_week: int
    open_time: time
    close_time: time
    is_closed: bool


class HolidayCreateRequest(ApiModel):
    date: date
    name: str
    description: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Date and name are required')
        return normalized


class HolidayUpdateRequest(ApiModel):
    holiday_date: date | None = Field(default=None, alias='date')
    name: str | None = None
    description: str | None = None


class HolidayResponse(ApiModel):
    id: int
    date: date
    name: str
    description: str | None = None


@business_hours_router.get('', response_model=list[BusinessHourResponse])
def list_business_hours(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    return db.query(BusinessHour).order_by(BusinessHour.day_of_week.asc()).all()


@business_hours_router.patch('', response_model=list[BusinessHourResponse])
def update_business_hours(
    data: BusinessHoursUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    existing = {
        hour.day_of_week: hour
        for hour in db.query(BusinessHour).filter(
            BusinessHour.day_of_week.in_([entry.day_of_week for entry in data.business_hours]),
        ).all()
    }

    updated_hours = []
    for entry in data.business_hours:
        hour = existing.get(entry.day_of_week)
        if hour is None:
            hour = BusinessHour(day_of_week=entry.day_of_week)
            db.add(hour)
        hour.open_time = entry.open_time
        hour.close_time = entry.close_time
        hour.is_closed = entry.is_closed
        updated_hours.append(hour)

    db.commit()
    for hour in updated_hours:
        db.refresh(hour)

    log_action('BUSINESS_HOURS_UPDATED', f'{len(updated_hours)} days', current_user.id)
    return updated_hours


def get_holiday_or_404(holiday_id: int, db: Session) -> Holiday:
    holiday = db.query(Holiday).filter(Holiday.id == holiday_id).first()
    if not holiday:
        raise not_found('Holiday not found')
    return holiday


@holidays_router.get('', response_model=list[HolidayResponse])
def list_holidays(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    return db.query(Holiday).order_by(Holiday.date.asc()).all()


@holidays_router.post('', response_model=HolidayResponse, status_code=status.HTTP_201_CREATED)
def create_holiday(
    data: HolidayCreateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if db.query(Holiday).filter(Holiday.date == data.date).first():
        raise conflict('Holiday already exists for this date')

    holiday = Holiday(date=data.date, name=data.name, description=data.description)
    db.add(holiday)
    db.commit()
    db.refresh(holiday)

    log_action('HOLIDAY_CREATED', data.date.isoformat(), current_user.id)
    return holiday


@holidays_router.get('/{holiday_id}', response_model=HolidayResponse)
def get_holiday(
    holiday_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    return get_holiday_or_404(holiday_id, db)


@holidays_router.patch('/{holiday_id}', response_model=HolidayResponse)
def update_holiday(
    holiday_id: int,
    data: HolidayUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    holiday = get_holiday_or_404(holiday_id, db)

    if data.holiday_date and data.holiday_date != holiday.date:
        if db.query(Holiday).filter(Holiday.date == data.holiday_date).first():
            raise conflict('Holiday already exists for this date')
        holiday.date = data.holiday_date
    if data.name is not None:
        holiday.name = data.name.strip()
    if data.description is not None:
        holiday.description = data.description

    db.commit()
    db.refresh(holiday)

    log_action('HOLIDAY_UPDATED', str(holiday.id), current_user.id)
    return holiday


@holidays_router.delete('/{holiday_id}', response_model=MessageResponse)
def delete_holiday(
    holiday_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    holiday = get_holiday_or_404(holiday_id, db)
    db.delete(holiday)
    db.commit()

    log_action('HOLIDAY_DELETED', str(holiday_id), current_user.id)
    return MessageResponse(message='Holiday deleted successfully')
