from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator, model_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import get_current_user, require_admin
from pitstop.core.audit import log_action
from pitstop.core.errors import forbidden, not_found
from pitstop.core.schemas import ApiModel, MessageResponse, Pagination, paginate
from pitstop.database import get_db
from pitstop.models.notification import Notification
from pitstop.models.user import User

router = APIRouter(tags=['notifications'])


class NotificationCreateRequest(ApiModel):
    title: str
    message: str
    type: str
    user_id: int | None = None
    is_public: bool = False
    data: dict[str, Any] | None = None

    @field_validator('title', 'message', 'type')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Title, message and type are required')
        return normalized

    @model_validator(mode='after')
    def validate_audience(self):
        if self.user_id is None and not self.is_public:
            raise ValueError('Either userId or isPublic must be specified')
        return self


class NotificationUpdateRequest(ApiModel):
    title: str | None = None
    message: str | None = None
    type: str | None = None
    is_public: bool | None = None
    data: dict[str, Any] | None = None
    is_read: bool | None = None


class NotificationResponse(ApiModel):
    id: int
    user_id: int | None = None
    title: str
    message: str
    type: str
    is_public: bool
    data: dict[str, Any] | None = None
    is_read: bool
    created_by: int | None = None
    created_at: datetime | None = None


class NotificationListResponse(ApiModel):
    notifications: list[NotificationResponse]
    pagination: Pagination


def get_notification_or_404(notification_id: int, db: Session) -> Notification:
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification:
        raise not_found('Notification not found')
    return notification


def ensure_recipient_or_admin(current_user: User, notification: Notification) -> None:
    if notification.user_id != current_user.id and not current_user.is_admin:
        raise forbidden('Access denied')


@router.get('', response_model=NotificationListResponse)
def list_notifications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    notification_type: str | None = Query(default=None, alias='type'),
    is_read: bool | None = Query(default=None, alias='isRead'),
    user_id: int | None = Query(default=None, alias='userId'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Notification)
    if user_id is not None and current_user.is_admin:
        query = query.filter(Notification.user_id == user_id)
    else:
        query = query.filter(or_(Notification.user_id == current_user.id, Notification.is_public.is_(True)))

    if notification_type:
        query = query.filter(Notification.type == notification_type)
    if is_read is not None:
        query = query.filter(Notification.is_read.is_(is_read))

    query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
    notifications, pagination = paginate(query, page, limit)
    log_action('NOTIFICATIONS_VIEWED', None, current_user.id)
    return NotificationListResponse(notifications=notifications, pagination=pagination)


@router.post('', response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
def create_notification(
    data: NotificationCreateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if data.user_id is not None and not db.query(User).filter(User.id == data.user_id).first():
        raise not_found('User not found')

    notification = Notification(**data.model_dump(), is_read=False, created_by=current_user.id)
    db.add(notification)
    db.commit()
    db.refresh(notification)

    log_action('NOTIFICATION_CREATED', f'{data.type} {data.title} user={data.user_id}', current_user.id)
    return notification


@router.get('/{notification_id}', response_model=NotificationResponse)
def get_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = get_notification_or_404(notification_id, db)
    if not notification.is_public:
        ensure_recipient_or_admin(current_user, notification)

    log_action('NOTIFICATION_VIEWED', str(notification.id), current_user.id)
    return notification


@router.patch('/{notification_id}', response_model=NotificationResponse)
def update_notification(
    notification_id: int,
    data: NotificationUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = get_notification_or_404(notification_id, db)
    ensure_recipient_or_admin(current_user, notification)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    # Recipients may only mark read or unread.
    if not current_user.is_admin and set(changes) - {'is_read'}:
        raise forbidden('Access denied')

    for field_name, value in changes.items():
        setattr(notification, field_name, value)

    db.commit()
    db.refresh(notification)

    log_action('NOTIFICATION_UPDATED', f'{notification.id} read={notification.is_read}', current_user.id)
    return notification


@router.delete('/{notification_id}', response_model=MessageResponse)
def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = get_notification_or_404(notification_id, db)
    ensure_recipient_or_admin(current_user, notification)

    db.delete(notification)
    db.commit()

    log_action('NOTIFICATION_DELETED', str(notification_id), current_user.id)
    return MessageResponse(message='Notification deleted successfully')
