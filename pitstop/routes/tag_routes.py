from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import get_current_user, require_admin
from pitstop.core.audit import log_action
from pitstop.core.errors import conflict, not_found
from pitstop.core.schemas import ApiModel, MessageResponse, Pagination, paginate
from pitstop.database import get_db
from pitstop.models.tag import Tag
from pitstop.models.user import User
from pitstop.routes.category_routes import normalize_slug

router = APIRouter(tags=['tags'])

SORTABLE_FIELDS = {'name': Tag.name, 'slug': Tag.slug, 'id': Tag.id}


class TagCreateRequest(ApiModel):
    name: str
    slug: str
    description: str | None = None
    color: str | None = None
    is_active: bool = True

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name and slug are required')
        return normalized

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, value: str) -> str:
        return normalize_slug(value)


class TagUpdateRequest(ApiModel):
    name: str | None = None
    slug: str | None = None
    description: str | None = None
    color: str | None = None
    is_active: bool | None = None

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, value: str | None) -> str | None:
        return None if value is None else normalize_slug(value)


class TagResponse(ApiModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    color: str | None = None
    is_active: bool


class TagListResponse(ApiModel):
    tags: list[TagResponse]
    pagination: Pagination


def get_tag_or_404(tag_id: int, db: Session) -> Tag:
    tag = db.query(Tag).filter(Tag.id == tag_id).first()
    if not tag:
        raise not_found('Tag not found')
    return tag


@router.get('', response_model=TagListResponse)
def list_tags(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = Query(default=None),
    sort: str = Query(default='name'),
    order: str = Query(default='asc', pattern='^(asc|desc)$'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Tag)
    if search:
        pattern = f'%{search.strip()}%'
        query = query.filter(or_(Tag.name.ilike(pattern), Tag.description.ilike(pattern)))

    sort_column = SORTABLE_FIELDS.get(sort, Tag.name)
    query = query.order_by(sort_column.desc() if order == 'desc' else sort_column.asc())

    tags, pagination = paginate(query, page, limit)
    log_action('TAGS_VIEWED', None, current_user.id)
    return TagListResponse(tags=tags, pagination=pagination)


@router.post('', response_model=TagResponse, status_code=status.HTTP_201_CREATED)
def create_tag(
    data: TagCreateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if db.query(Tag).filter(Tag.slug == data.slug).first():
        raise conflict('Tag with this slug already exists')

    tag = Tag(**data.model_dump())
    db.add(tag)
    db.commit()
    db.refresh(tag)

    log_action('TAG_CREATED', f'{data.name} ({data.slug})', current_user.id)
    return tag


@router.patch('/{tag_id}', response_model=TagResponse)
def update_tag(
    tag_id: int,
    data: TagUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    tag = get_tag_or_404(tag_id, db)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    if changes.get('slug') and changes['slug'] != tag.slug:
        if db.query(Tag).filter(Tag.slug == changes['slug'], Tag.id != tag.id).first():
            raise conflict('Tag with this slug already exists')

    for field_name, value in changes.items():
        setattr(tag, field_name, value)

    db.commit()
    db.refresh(tag)

    log_action('TAG_UPDATED', str(tag.id), current_user.id)
    return tag


@router.delete('/{tag_id}', response_model=MessageResponse)
def delete_tag(
    tag_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    tag = get_tag_or_404(tag_id, db)
    db.delete(tag)
    db.commit()

    log_action('TAG_DELETED', str(tag_id), current_user.id)
    return MessageResponse(message='Tag deleted successfully')
