from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import get_current_user
from pitstop.core.errors import forbidden, invalid_argument, not_found
from pitstop.core.schemas import ApiModel, MessageResponse
from pitstop.database import get_db
from pitstop.models.group import GROUP_ADMIN, GROUP_MEMBER, Group, GroupMember, GroupMessage
from pitstop.models.user import User

router = APIRouter(tags=['groups'])

DEFAULT_MESSAGE_PAGE_SIZE = 50


def require_text(value: str | None, message: str) -> str:
    normalized = (value or '').strip()
    if not normalized:
        raise invalid_argument(message)
    return normalized


class GroupCreateRequest(ApiModel):
    name: str | None = None
    description: str | None = None
    member_ids: list[int] = []


class GroupUpdateRequest(ApiModel):
    name: str | None = None
    description: str | None = None


class GroupMessageCreateRequest(ApiModel):
    content: str

    @field_validator('content')
    @classmethod
    def validate_content(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Content is required')
        return normalized


class GroupMemberResponse(ApiModel):
    user_id: int
    role: str


class GroupResponse(ApiModel):
    id: int
    name: str
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    members: list[GroupMemberResponse] = []


class GroupMessageResponse(ApiModel):
    id: int
    group_id: int
    sender_id: int
    content: str
    created_at: datetime | None = None


class GroupMessagePage(ApiModel):
    messages: list[GroupMessageResponse]
    next_cursor: int | None = None


def get_membership(group_id: int, user_id: int, db: Session) -> GroupMember | None:
    return db.query(GroupMember).filter(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id,
    ).first()


def get_member_group_or_404(group_id: int, user: User, db: Session) -> Group:
    group = db.query(Group).filter(Group.id == group_id).first()
    if not group or not get_membership(group_id, user.id, db):
        raise not_found('Group not found')
    return group


def get_admin_group(group_id: int, user: User, db: Session) -> Group:
    membership = get_membership(group_id, user.id, db)
    if membership is None or membership.role != GROUP_ADMIN:
        raise forbidden()
    group = db.query(Group).filter(Group.id == group_id).first()
    if not group:
        raise not_found('Group not found')
    return group


def ensure_member(group_id: int, user: User, db: Session) -> None:
    if get_membership(group_id, user.id, db) is None:
        raise forbidden()


@router.get('', response_model=list[GroupResponse])
def list_groups(
    search: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Group).join(GroupMember, GroupMember.group_id == Group.id).filter(
        GroupMember.user_id == current_user.id
    )
    if search:
        query = query.filter(Group.name.ilike(f'%{search.strip()}%'))
    return query.order_by(Group.updated_at.desc(), Group.id.desc()).all()


@router.post('', response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
def create_group(
    data: GroupCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    name = require_text(data.name, 'Name is required')

    member_ids = {member_id for member_id in data.member_ids if member_id != current_user.id}
    if member_ids and db.query(User).filter(User.id.in_(member_ids)).count() != len(member_ids):
        raise invalid_argument('One or more members do not exist')

    group = Group(name=name, description=data.description)
    group.members.append(GroupMember(user_id=current_user.id, role=GROUP_ADMIN))
    for member_id in sorted(member_ids):
        group.members.append(GroupMember(user_id=member_id, role=GROUP_MEMBER))

    db.add(group)
    db.commit()
    db.refresh(group)
    return group


@router.get('/{group_id}', response_model=GroupResponse)
def get_group(
    group_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_member_group_or_404(group_id, current_user, db)


@router.patch('/{group_id}', response_model=GroupResponse)
def update_group(
    group_id: int,
    data: GroupUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    group = get_admin_group(group_id, current_user, db)
    group.name = require_text(data.name, 'Name is required')
    if data.description is not None:
        group.description = data.description

    db.commit()
    db.refresh(group)
    return group


@router.delete('/{group_id}', response_model=MessageResponse)
def delete_group(
    group_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    group = get_admin_group(group_id, current_user, db)
    db.delete(group)
    db.commit()
    return MessageResponse(message='Group deleted successfully')


@router.get('/{group_id}/messages', response_model=GroupMessagePage)
def list_group_messages(
    group_id: int,
    limit: int = Query(default=DEFAULT_MESSAGE_PAGE_SIZE, ge=1, le=200),
    cursor: int | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_member(group_id, current_user, db)

    query = db.query(GroupMessage).filter(GroupMessage.group_id == group_id)
    if cursor is not None:
        query = query.filter(GroupMessage.id < cursor)
    messages = query.order_by(GroupMessage.id.desc()).limit(limit).all()

    next_cursor = messages[-1].id if len(messages) == limit else None
    return GroupMessagePage(messages=messages, next_cursor=next_cursor)


@router.post('/{group_id}/messages', response_model=GroupMessageResponse, status_code=status.HTTP_201_CREATED)
def post_group_message(
    group_id: int,
    data: GroupMessageCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_member(group_id, current_user, db)
    group = db.query(Group).filter(Group.id == group_id).first()

    message = GroupMessage(group_id=group_id, sender_id=current_user.id, content=data.content)
    db.add(message)
    # Last activity drives the group list order.
    group.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(message)
    return message


@router.delete('/{group_id}/messages/{message_id}', response_model=MessageResponse)
def delete_group_message(
    group_id: int,
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = db.query(GroupMessage).filter(
        GroupMessage.id == message_id,
        GroupMessage.group_id == group_id,
    ).first()
    membership = get_membership(group_id, current_user.id, db)
    can_delete = message is not None and membership is not None and (
        message.sender_id == current_user.id or membership.role == GROUP_ADMIN
    )
    if not can_delete:
        raise not_found('Message not found or access denied')

    db.delete(message)
    db.commit()
    return MessageResponse(message='Message deleted successfully')
