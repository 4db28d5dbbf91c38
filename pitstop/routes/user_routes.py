from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import require_admin
from pitstop.auth.passwords import hash_password
from pitstop.core.audit import log_action
from pitstop.core.errors import conflict, invalid_argument, not_found
from pitstop.core.schemas import ApiModel, MessageResponse, Pagination, paginate
from pitstop.database import get_db
from pitstop.models.booking import Booking
from pitstop.models.payment import Payment
from pitstop.models.review import Review
from pitstop.models.subscription import Subscription
from pitstop.models.user import ROLE_CUSTOMER, USER_ROLES, User
from pitstop.routes.auth_routes import normalize_email

router = APIRouter(tags=['users'])


def normalize_role(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in USER_ROLES:
        raise ValueError('Invalid role.')
    return normalized


class UserCreateRequest(ApiModel):
    email: str
    password: str = Field(min_length=8)
    name: str | None = None
    phone: str | None = None
    role: str = ROLE_CUSTOMER

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        return normalize_role(value)


class UserUpdateRequest(ApiModel):
    email: str | None = None
    password: str | None = Field(default=None, min_length=8)
    name: str | None = None
    phone: str | None = None
    role: str | None = None
    image: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        return None if value is None else normalize_email(value)

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str | None) -> str | None:
        return None if value is None else normalize_role(value)


class UserResponse(ApiModel):
    id: int
    email: str
    name: str | None = None
    phone: str | None = None
    role: str
    image: str | None = None
    created_at: datetime | None = None


class UserListResponse(ApiModel):
    users: list[UserResponse]
    pagination: Pagination


def get_user_or_404(user_id: int, db: Session) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise not_found('User not found')
    return user


def ensure_email_available(email: str, db: Session, exclude_id: int | None = None) -> None:
    query = db.query(User).filter(User.email == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise conflict('Email already in use')


@router.get('', response_model=UserListResponse)
def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    role: str | None = Query(default=None),
    search: str | None = Query(default=None),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    query = db.query(User)
    if role:
        query = query.filter(User.role == role.strip().upper())
    if search:
        pattern = f'%{search.strip()}%'
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    users, pagination = paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)
    return UserListResponse(users=users, pagination=pagination)


@router.post('', response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_email_available(data.email, db)

    user = User(
        email=data.email,
        name=data.name,
        phone=data.phone,
        role=data.role,
        hashed_password=hash_password(data.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    log_action('USER_CREATED', f'{user.email} ({user.role})', current_user.id)
    return user


@router.get('/{user_id}', response_model=UserResponse)
def get_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    return get_user_or_404(user_id, db)


@router.patch('/{user_id}', response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = get_user_or_404(user_id, db)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    if changes.get('email') and changes['email'] != user.email:
        ensure_email_available(changes['email'], db, exclude_id=user.id)

    password = changes.pop('password', None)
    if password:
        user.hashed_password = hash_password(password)
    for field_name, value in changes.items():
        setattr(user, field_name, value)

    db.commit()
    db.refresh(user)

    log_action('USER_UPDATED', str(user.id), current_user.id)
    return user


@router.delete('/{user_id}', response_model=MessageResponse)
def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = get_user_or_404(user_id, db)
    if user.id == current_user.id:
        raise invalid_argument('Cannot delete your own account')

    history = (
        db.query(Booking).filter(Booking.user_id == user.id),
        db.query(Payment).filter(Payment.user_id == user.id),
        db.query(Subscription).filter(Subscription.user_id == user.id),
        db.query(Review).filter(Review.user_id == user.id),
    )
    if any(query.count() > 0 for query in history):
        raise invalid_argument('Cannot delete user with existing bookings, payments, subscriptions or reviews')

    db.delete(user)
    db.commit()

    log_action('USER_DELETED', str(user_id), current_user.id)
    return MessageResponse(message='User deleted successfully')
