from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import ensure_owner_or_admin, get_current_user
from pitstop.core.audit import log_action
from pitstop.core.errors import invalid_argument, not_found
from pitstop.core.schemas import ApiModel, MessageResponse, Pagination, paginate
from pitstop.database import get_db
from pitstop.models.plan import Plan
from pitstop.models.subscription import (
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_CANCELLED,
    SUBSCRIPTION_STATUSES,
    Subscription,
)
from pitstop.models.user import User
from pitstop.routes.discount_routes import to_naive_utc

router = APIRouter(tags=['subscriptions'])


def normalize_status(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in SUBSCRIPTION_STATUSES:
        raise ValueError('Invalid subscription status.')
    return normalized


class SubscriptionCreateRequest(ApiModel):
    user_id: int
    plan_id: int
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: str = SUBSCRIPTION_ACTIVE
    auto_renew: bool = False

    @field_validator('start_date', 'end_date')
    @classmethod
    def validate_dates(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        return normalize_status(value)


class SubscriptionUpdateRequest(ApiModel):
    status: str | None = None
    auto_renew: bool | None = None
    end_date: datetime | None = None

    @field_validator('end_date')
    @classmethod
    def validate_end_date(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        return None if value is None else normalize_status(value)


class SubscriptionResponse(ApiModel):
    id: int
    user_id: int
    plan_id: int
    status: str
    start_date: datetime
    end_date: datetime | None = None
    auto_renew: bool
    created_at: datetime | None = None


class SubscriptionListResponse(ApiModel):
    subscriptions: list[SubscriptionResponse]
    pagination: Pagination


def get_subscription_or_404(subscription_id: int, db: Session) -> Subscription:
    subscription = db.query(Subscription).filter(Subscription.id == subscription_id).first()
    if not subscription:
        raise not_found('Subscription not found')
    return subscription


def ensure_no_active_subscription(db: Session, user_id: int, exclude_id: int | None = None) -> None:
    query = db.query(Subscription).filter(
        Subscription.user_id == user_id,
        Subscription.status == SUBSCRIPTION_ACTIVE,
    )
    if exclude_id is not None:
        query = query.filter(Subscription.id != exclude_id)
    if query.first():
        raise invalid_argument('User already has an active subscription')


@router.get('', response_model=SubscriptionListResponse)
def list_subscriptions(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    subscription_status: str | None = Query(default=None, alias='status'),
    user_id: int | None = Query(default=None, alias='userId'),
    plan_id: int | None = Query(default=None, alias='planId'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Subscription)
    # Customers only ever see their own subscriptions.
    if not current_user.is_admin:
        user_id = current_user.id
    if user_id is not None:
        query = query.filter(Subscription.user_id == user_id)
    if subscription_status:
        query = query.filter(Subscription.status == subscription_status.strip().upper())
    if plan_id is not None:
        query = query.filter(Subscription.plan_id == plan_id)

    query = query.order_by(Subscription.created_at.desc(), Subscription.id.desc())
    subscriptions, pagination = paginate(query, page, limit)
    log_action('SUBSCRIPTIONS_VIEWED', None, current_user.id)
    return SubscriptionListResponse(subscriptions=subscriptions, pagination=pagination)


@router.post('', response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
def create_subscription(
    data: SubscriptionCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_owner_or_admin(current_user, data.user_id)

    user = db.query(User).filter(User.id == data.user_id).first()
    if not user:
        raise not_found('User not found')

    plan = db.query(Plan).filter(Plan.id == data.plan_id).first()
    if not plan:
        raise not_found('Plan not found')
    if not plan.is_active:
        raise invalid_argument('Plan is not available')

    if data.status == SUBSCRIPTION_ACTIVE:
        ensure_no_active_subscription(db, user.id)

    start_date = data.start_date or datetime.utcnow()
    end_date = data.end_date or start_date + timedelta(days=plan.duration)
    if end_date <= start_date:
        raise invalid_argument('End date must be after start date')

    subscription = Subscription(
        user_id=user.id,
        plan_id=plan.id,
        status=data.status,
        start_date=start_date,
        end_date=end_date,
        auto_renew=data.auto_renew,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)

    log_action('SUBSCRIPTION_CREATED', f'user={user.id} plan={plan.id}', current_user.id)
    return subscription


@router.get('/{subscription_id}', response_model=SubscriptionResponse)
def get_subscription(
    subscription_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subscription = get_subscription_or_404(subscription_id, db)
    ensure_owner_or_admin(current_user, subscription.user_id)

    log_action('SUBSCRIPTION_VIEWED', str(subscription.id), current_user.id)
    return subscription


@router.patch('/{subscription_id}', response_model=SubscriptionResponse)
def update_subscription(
    subscription_id: int,
    data: SubscriptionUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subscription = get_subscription_or_404(subscription_id, db)
    ensure_owner_or_admin(current_user, subscription.user_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    if changes.get('status') == SUBSCRIPTION_ACTIVE and subscription.status != SUBSCRIPTION_ACTIVE:
        ensure_no_active_subscription(db, subscription.user_id, exclude_id=subscription.id)

    end_date = changes.get('end_date', subscription.end_date)
    if end_date is not None and end_date <= subscription.start_date:
        raise invalid_argument('End date must be after start date')

    for field_name, value in changes.items():
        setattr(subscription, field_name, value)

    db.commit()
    db.refresh(subscription)

    log_action('SUBSCRIPTION_UPDATED', f'{subscription.id} {subscription.status}', current_user.id)
    return subscription


@router.delete('/{subscription_id}', response_model=MessageResponse)
def cancel_subscription(
    subscription_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subscription = get_subscription_or_404(subscription_id, db)
    ensure_owner_or_admin(current_user, subscription.user_id)

    # Cancelling keeps the row.
    subscription.status = SUBSCRIPTION_CANCELLED
    subscription.auto_renew = False
    db.commit()

    log_action('SUBSCRIPTION_CANCELLED', str(subscription_id), current_user.id)
    return MessageResponse(message='Subscription cancelled successfully')
