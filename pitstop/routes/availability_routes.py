from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import get_current_user
from pitstop.core.errors import invalid_argument
from pitstop.database import get_db
from pitstop.models.user import User
from pitstop.services.availability import AvailabilityResult, compute_availability

router = APIRouter(tags=['availability'])


def parse_availability_query(date_value: str | None, service_id_value: str | None) -> tuple[date, int]:
    if not date_value or not service_id_value:
        raise invalid_argument('Date and service ID are required')

    try:
        target_date = date.fromisoformat(date_value.strip())
    except ValueError as exc:
        raise invalid_argument('Invalid date') from exc

    try:
        service_id = int(service_id_value)
    except ValueError as exc:
        raise invalid_argument('Invalid service ID') from exc

    return target_date, service_id


@router.get('', response_model=AvailabilityResult, response_model_exclude_none=True)
def get_availability(
    date_value: str | None = Query(default=None, alias='date'),
    service_id_value: str | None = Query(default=None, alias='serviceId'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    target_date, service_id = parse_availability_query(date_value, service_id_value)
    return compute_availability(db, service_id, target_date)
