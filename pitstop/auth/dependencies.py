import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from pitstop.auth import jwt_handler
from pitstop.core.errors import forbidden, unauthorized
from pitstop.database import get_db
from pitstop.models.user import User

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise unauthorized()

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise unauthorized("Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise unauthorized("Invalid token subject")

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise unauthorized("User not found")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise forbidden()
    return current_user


def ensure_owner_or_admin(current_user: User, owner_id: int | None) -> None:
    if owner_id != current_user.id and not current_user.is_admin:
        raise forbidden()
