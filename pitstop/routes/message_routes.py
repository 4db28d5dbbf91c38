from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import get_current_user
from pitstop.core.errors import forbidden, not_found
from pitstop.core.schemas import ApiModel, Pagination, paginate
from pitstop.database import get_db
from pitstop.models.message import Message
from pitstop.models.user import User

router = APIRouter(tags=['messages'])


class MessageCreateRequest(ApiModel):
    receiver_id: int
    content: str

    @field_validator('content')
    @classmethod
    def validate_content(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Receiver and content are required')
        return normalized


class DirectMessageResponse(ApiModel):
    id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool
    created_at: datetime | None = None


class DirectMessageListResponse(ApiModel):
    messages: list[DirectMessageResponse]
    pagination: Pagination


@router.get('', response_model=DirectMessageListResponse)
def list_messages(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    is_unread: bool = Query(default=False, alias='isUnread'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Message).filter(
        or_(Message.sender_id == current_user.id, Message.receiver_id == current_user.id)
    )
    if is_unread:
        query = query.filter(Message.receiver_id == current_user.id, Message.is_read.is_(False))

    query = query.order_by(Message.created_at.desc(), Message.id.desc())
    messages, pagination = paginate(query, page, limit)
    return DirectMessageListResponse(messages=messages, pagination=pagination)


@router.post('', response_model=DirectMessageResponse, status_code=status.HTTP_201_CREATED)
def send_message(
    data: MessageCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    receiver = db.query(User).filter(User.id == data.receiver_id).first()
    if not receiver:
        raise not_found('Receiver not found')

    message = Message(
        sender_id=current_user.id,
        receiver_id=receiver.id,
        content=data.content,
        is_read=False,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


@router.patch('/{message_id}/read', response_model=DirectMessageResponse)
def mark_message_read(
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = db.query(Message).filter(Message.id == message_id).first()
    if not message:
        raise not_found('Message not found')
    if message.receiver_id != current_user.id:
        raise forbidden()

    message.is_read = True
    db.commit()
    db.refresh(message)
    return message
