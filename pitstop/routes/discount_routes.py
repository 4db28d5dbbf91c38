from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field, field_validator, model_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import get_current_user, require_admin
from pitstop.core.audit import log_action
from pitstop.core.errors import conflict, invalid_argument, not_found
from pitstop.core.schemas import ApiModel, MessageResponse, Pagination, paginate
from pitstop.database import get_db
from pitstop.models.discount import DISCOUNT_TYPES, Discount
from pitstop.models.user import User

router = APIRouter(tags=['discounts'])


def normalize_code(value: str) -> str:
    normalized = value.strip().upper()
    if not normalized:
        raise ValueError('Missing required fields')
    return normalized


def normalize_type(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in DISCOUNT_TYPES:
        raise ValueError('Invalid discount type.')
    return normalized


def to_naive_utc(value: datetime | None) -> datetime | None:
    # Stored columns are naive UTC.
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class DiscountCreateRequest(ApiModel):
    code: str
    type: str
    value: float = Field(gt=0)
    max_uses: int | None = Field(default=None, ge=1)
    start_date: datetime
    end_date: datetime
    min_amount: float | None = Field(default=None, ge=0)

    @field_validator('start_date', 'end_date')
    @classmethod
    def validate_dates(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator('code')
    @classmethod
    def validate_code(cls, value: str) -> str:
        return normalize_code(value)

    @field_validator('type')
    @classmethod
    def validate_type(cls, value: str) -> str:
        return normalize_type(value)

    @model_validator(mode='after')
    def validate_window(self):
        if self.start_date > self.end_date:
            raise ValueError('Start date must be before end date.')
        if self.type == 'PERCENTAGE' and self.value > 100:
            raise ValueError('Percentage discounts cannot exceed 100.')
        return self


class DiscountUpdateRequest(ApiModel):
    code: str | None = None
    type: str | None = None
    value: float | None = Field(default=None, gt=0)
    max_uses: int | None = Field(default=None, ge=1)
    start_date: datetime | None = None
    end_date: datetime | None = None
    min_amount: float | None = Field(default=None, ge=0)
    is_active: bool | None = None

    @field_validator('start_date', 'end_date')
    @classmethod
    def validate_dates(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)

    @field_validator('code')
    @classmethod
    def validate_code(cls, value: str | None) -> str | None:
        return None if value is None else normalize_code(value)

    @field_validator('type')
    @classmethod
    def validate_type(cls, value: str | None) -> str | None:
        return None if value is None else normalize_type(value)


class DiscountResponse(ApiModel):
    id: int
    code: str
    type: str
    value: float
    max_uses: int | None = None
    start_date: datetime
    end_date: datetime
    min_amount: float | None = None
    is_active: bool
    created_at: datetime | None = None


class DiscountListResponse(ApiModel):
    discounts: list[DiscountResponse]
    pagination: Pagination


def get_discount_or_404(discount_id: int, db: Session) -> Discount:
    discount = db.query(Discount).filter(Discount.id == discount_id).first()
    if not discount:
        raise not_found('Discount not found')
    return discount


@router.get('', response_model=DiscountListResponse)
def list_discounts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    is_active: bool = Query(default=False, alias='isActive'),
    discount_type: str | None = Query(default=None, alias='type'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    query = db.query(Discount)
    if is_active:
        now = datetime.utcnow()
        query = query.filter(
            Discount.is_active.is_(True),
            Discount.start_date <= now,
            Discount.end_date >= now,
        )
    if discount_type:
        query = query.filter(Discount.type == discount_type.strip().upper())

    discounts, pagination = paginate(query.order_by(Discount.created_at.desc(), Discount.id.desc()), page, limit)
    return DiscountListResponse(discounts=discounts, pagination=pagination)


@router.post('', response_model=DiscountResponse, status_code=status.HTTP_201_CREATED)
def create_discount(
    data: DiscountCreateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if db.query(Discount).filter(Discount.code == data.code).first():
        raise conflict('Discount code already exists')

    discount = Discount(**data.model_dump(), is_active=True)
    db.add(discount)
    db.commit()
    db.refresh(discount)

    log_action('DISCOUNT_CREATED', data.code, current_user.id)
    return discount


@router.get('/{discount_id}', response_model=DiscountResponse)
def get_discount(
    discount_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    return get_discount_or_404(discount_id, db)


@router.patch('/{discount_id}', response_model=DiscountResponse)
def update_discount(
    discount_id: int,
    data: DiscountUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    discount = get_discount_or_404(discount_id, db)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    if changes.get('code') and changes['code'] != discount.code:
        if db.query(Discount).filter(Discount.code == changes['code'], Discount.id != discount.id).first():
            raise conflict('Discount code already exists')

    start_date = changes.get('start_date', discount.start_date)
    end_date = changes.get('end_date', discount.end_date)
    if start_date > end_date:
        raise invalid_argument('Start date must be before end date.')

    discount_type = changes.get('type', discount.type)
    amount = changes.get('value', discount.value)
    if discount_type == 'PERCENTAGE' and amount > 100:
        raise invalid_argument('Percentage discounts cannot exceed 100.')

    for field_name, value in changes.items():
        setattr(discount, field_name, value)

    db.commit()
    db.refresh(discount)

    log_action('DISCOUNT_UPDATED', discount.code, current_user.id)
    return discount


@router.delete('/{discount_id}', response_model=MessageResponse)
def delete_discount(
    discount_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    discount = get_discount_or_404(discount_id, db)
    db.delete(discount)
    db.commit()

    log_action('DISCOUNT_DELETED', str(discount_id), current_user.id)
    return MessageResponse(message='Discount deleted successfully')
