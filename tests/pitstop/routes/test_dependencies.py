import pytest
from fastapi.security import HTTPAuthorizationCredentials

from pitstop.auth import jwt_handler
from pitstop.auth.dependencies import ensure_owner_or_admin, get_current_user, require_admin
from pitstop.core.errors import ApiError, ErrorKind


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_get_current_user_resolves_token_subject(db, customer_user) -> None:
    token = jwt_handler.create_access_token(subject=customer_user.email, role=customer_user.role)

    assert get_current_user(credentials=bearer(token), db=db).id == customer_user.id


def test_get_current_user_requires_credentials(db) -> None:
    with pytest.raises(ApiError) as exception_info:
        get_current_user(credentials=None, db=db)

    assert exception_info.value.kind is ErrorKind.UNAUTHORIZED


def test_get_current_user_rejects_garbage_token(db) -> None:
    with pytest.raises(ApiError) as exception_info:
        get_current_user(credentials=bearer('not.a.token'), db=db)

    assert exception_info.value.kind is ErrorKind.UNAUTHORIZED
    assert exception_info.value.message == 'Invalid token'


def test_get_current_user_rejects_expired_token(db, customer_user, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('pitstop.core.config.JWT_EXPIRES_MINUTES', -5)
    token = jwt_handler.create_access_token(subject=customer_user.email, role=customer_user.role)

    with pytest.raises(ApiError) as exception_info:
        get_current_user(credentials=bearer(token), db=db)

    assert exception_info.value.message == 'Invalid token'


def test_get_current_user_rejects_unknown_user(db) -> None:
    token = jwt_handler.create_access_token(subject='ghost@example.com', role='CUSTOMER')

    with pytest.raises(ApiError) as exception_info:
        get_current_user(credentials=bearer(token), db=db)

    assert exception_info.value.kind is ErrorKind.UNAUTHORIZED
    assert exception_info.value.message == 'User not found'


def test_require_admin_allows_admin_and_forbids_customer(admin_user, customer_user) -> None:
    assert require_admin(current_user=admin_user) is admin_user

    with pytest.raises(ApiError) as exception_info:
        require_admin(current_user=customer_user)

    assert exception_info.value.kind is ErrorKind.FORBIDDEN


def test_ensure_owner_or_admin(admin_user, customer_user, other_customer) -> None:
    ensure_owner_or_admin(customer_user, customer_user.id)
    ensure_owner_or_admin(admin_user, customer_user.id)

    with pytest.raises(ApiError) as exception_info:
        ensure_owner_or_admin(other_customer, customer_user.id)

    assert exception_info.value.kind is ErrorKind.FORBIDDEN
