import os
from datetime import time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')
os.environ.setdefault('STRIPE_WEBHOOK_SECRET', 'whsec_test')

from pitstop.database import Base  # noqa: E402
from pitstop.models import (  # noqa: E402,F401
    booking,
    business_hour,
    category,
    content,
    discount,
    group,
    holiday,
    message,
    notification,
    payment,
    plan,
    report,
    review,
    service,
    setting,
    subscription,
    tag,
    user,
    wallet,
)
from pitstop.models.business_hour import BusinessHour  # noqa: E402
from pitstop.models.service import Service  # noqa: E402
from pitstop.models.user import ROLE_ADMIN, ROLE_CUSTOMER, User  # noqa: E402


@pytest.fixture
def db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def make_user(db, email: str, role: str = ROLE_CUSTOMER, name: str | None = None) -> User:
    new_user = User(email=email, name=name or email.split('@')[0], role=role, hashed_password='')
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    return new_user


@pytest.fixture
def admin_user(db) -> User:
    return make_user(db, 'admin@pitstop.test', role=ROLE_ADMIN, name='Admin')


@pytest.fixture
def customer_user(db) -> User:
    return make_user(db, 'driver@pitstop.test', name='Driver')


@pytest.fixture
def other_customer(db) -> User:
    return make_user(db, 'other@pitstop.test', name='Other')


@pytest.fixture
def oil_change(db) -> Service:
    new_service = Service(name='Oil change', description='Synthetic oil and filter', price=49.0, duration=30)
    db.add(new_service)
    db.commit()
    db.refresh(new_service)
    return new_service


def set_business_hours(db, day_of_week: int, open_time: time, close_time: time, is_closed: bool = False) -> BusinessHour:
    row = BusinessHour(day_of_week=day_of_week, open_time=open_time, close_time=close_time, is_closed=is_closed)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def add_user(db):
    def factory(email: str, role: str = ROLE_CUSTOMER, name: str | None = None) -> User:
        return make_user(db, email, role=role, name=name)

    return factory


@pytest.fixture
def add_business_hours(db):
    def factory(day_of_week: int, open_time: time, close_time: time, is_closed: bool = False) -> BusinessHour:
        return set_business_hours(db, day_of_week, open_time, close_time, is_closed)

    return factory
