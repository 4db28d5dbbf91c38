from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field, field_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import require_admin
from pitstop.core.audit import log_action
from pitstop.core.errors import not_found
from pitstop.core.schemas import ApiModel, MessageResponse, Pagination, paginate
from pitstop.database import get_db
from pitstop.models.plan import Plan
from pitstop.models.user import User

router = APIRouter(tags=['plans'])


class PlanCreateRequest(ApiModel):
    name: str
    description: str | None = None
    price: float = Field(gt=0)
    duration: int = Field(gt=0)
    features: list[str] = []

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name, price and duration are required')
        return normalized


class PlanUpdateRequest(ApiModel):
    name: str | None = None
    description: str | None = None
    price: float | None = Field(default=None, gt=0)
    duration: int | None = Field(default=None, gt=0)
    features: list[str] | None = None
    is_active: bool | None = None


class PlanResponse(ApiModel):
    id: int
    name: str
    description: str | None = None
    price: float
    duration: int
    features: list[str] = []
    is_active: bool
    created_at: datetime | None = None


class PlanListResponse(ApiModel):
    plans: list[PlanResponse]
    pagination: Pagination


def get_plan_or_404(plan_id: int, db: Session) -> Plan:
    plan = db.query(Plan).filter(Plan.id == plan_id).first()
    if not plan:
        raise not_found('Plan not found')
    return plan


@router.get('', response_model=PlanListResponse)
def list_plans(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    is_active: bool | None = Query(default=None, alias='isActive'),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Plan)
    if is_active is not None:
        query = query.filter(Plan.is_active.is_(is_active))

    plans, pagination = paginate(query.order_by(Plan.created_at.desc(), Plan.id.desc()), page, limit)
    log_action('PLANS_VIEWED', None, current_user.id)
    return PlanListResponse(plans=plans, pagination=pagination)


@router.post('', response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(
    data: PlanCreateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    plan = Plan(**data.model_dump(), is_active=True)
    db.add(plan)
    db.commit()
    db.refresh(plan)

    log_action('PLAN_CREATED', f'{data.name} {data.price} / {data.duration}d', current_user.id)
    return plan


@router.get('/{plan_id}', response_model=PlanResponse)
def get_plan(
    plan_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    return get_plan_or_404(plan_id, db)


@router.patch('/{plan_id}', response_model=PlanResponse)
def update_plan(
    plan_id: int,
    data: PlanUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    plan = get_plan_or_404(plan_id, db)
    for field_name, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(plan, field_name, value)

    db.commit()
    db.refresh(plan)

    log_action('PLAN_UPDATED', str(plan.id), current_user.id)
    return plan


@router.delete('/{plan_id}', response_model=MessageResponse)
def delete_plan(
    plan_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    plan = get_plan_or_404(plan_id, db)
    db.delete(plan)
    db.commit()

    log_action('PLAN_DELETED', str(plan_id), current_user.id)
    return MessageResponse(message='Plan deleted successfully')
