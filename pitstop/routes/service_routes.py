from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import Field, field_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import require_admin
from pitstop.core.audit import log_action
from pitstop.core.errors import invalid_argument, not_found
from pitstop.core.schemas import ApiModel, MessageResponse
from pitstop.database import get_db
from pitstop.models.booking import ACTIVE_BOOKING_STATUSES, Booking
from pitstop.models.service import Service
from pitstop.models.user import User

router = APIRouter(tags=['services'])


class ServiceCreateRequest(ApiModel):
    name: str
    description: str
    price: float = Field(gt=0)
    duration: int = Field(gt=0)

    @field_validator('name', 'description')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('All fields are required')
        return normalized


class ServiceUpdateRequest(ApiModel):
    name: str | None = None
    description: str | None = None
    price: float | None = Field(default=None, gt=0)
    duration: int | None = Field(default=None, gt=0)
    is_active: bool | None = None


class ServiceResponse(ApiModel):
    id: int
    name: str
    description: str
    price: float
    duration: int
    is_active: bool
    created_at: datetime | None = None


def get_service_or_404(service_id: int, db: Session) -> Service:
    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        raise not_found('Service not found')
    return service


@router.get('', response_model=list[ServiceResponse])
def list_services(db: Session = Depends(get_db)):
    return db.query(Service).filter(
        Service.is_active.is_(True),
    ).order_by(Service.created_at.desc(), Service.id.desc()).all()


@router.post('', response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    data: ServiceCreateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = Service(
        name=data.name,
        description=data.description,
        price=data.price,
        duration=data.duration,
        is_active=True,
    )
    db.add(service)
    db.commit()
    db.refresh(service)

    log_action('SERVICE_CREATED', data.name, current_user.id)
    return service


@router.get('/{service_id}', response_model=ServiceResponse)
def get_service(service_id: int, db: Session = Depends(get_db)):
    return get_service_or_404(service_id, db)


@router.patch('/{service_id}', response_model=ServiceResponse)
def update_service(
    service_id: int,
    data: ServiceUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = get_service_or_404(service_id, db)

    for field_name, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(service, field_name, value)

    db.commit()
    db.refresh(service)

    log_action('SERVICE_UPDATED', str(service.id), current_user.id)
    return service


@router.delete('/{service_id}', response_model=MessageResponse)
def delete_service(
    service_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = get_service_or_404(service_id, db)

    active_bookings = db.query(Booking).filter(
        Booking.service_id == service.id,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
    ).count()
    if active_bookings > 0:
        raise invalid_argument('Cannot delete service with active bookings')

    db.delete(service)
    db.commit()

    log_action('SERVICE_DELETED', str(service_id), current_user.id)
    return MessageResponse(message='Service deleted successfully')
