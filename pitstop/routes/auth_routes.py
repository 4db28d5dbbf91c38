import logging

from fastapi import APIRouter, Depends, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from pitstop.auth import jwt_handler
from pitstop.auth.dependencies import get_current_user
from pitstop.auth.passwords import hash_password, verify_password
from pitstop.core.errors import conflict, unauthorized
from pitstop.core.schemas import ApiModel
from pitstop.database import get_db
from pitstop.models.user import ROLE_CUSTOMER, User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if '@' not in normalized or normalized.startswith('@') or normalized.endswith('@'):
        raise ValueError('A valid email address is required.')
    return normalized


class RegisterRequest(ApiModel):
    email: str
    password: str
    name: str
    phone: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')
        return value

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized


class LoginRequest(ApiModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return value.strip().lower()


class TokenResponse(ApiModel):
    access_token: str
    token_type: str = 'bearer'


class CurrentUserResponse(ApiModel):
    id: int
    email: str
    name: str | None = None
    role: str


def issue_token(user: User) -> TokenResponse:
    return TokenResponse(access_token=jwt_handler.create_access_token(subject=user.email, role=user.role))


@router.post('/register', response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    existing_user = db.query(User).filter(User.email == data.email).first()
    if existing_user:
        raise conflict('User already exists')

    user = User(
        email=data.email,
        name=data.name,
        phone=data.phone,
        hashed_password=hash_password(data.password),
        role=ROLE_CUSTOMER,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info('Registered user %s', user.id)
    return issue_token(user)


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email).first()
    if user is None or not verify_password(data.password, user.hashed_password):
        raise unauthorized('Invalid email or password')
    return issue_token(user)


@router.get('/me', response_model=CurrentUserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
