from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import get_current_user, require_admin
from pitstop.core.audit import log_action
from pitstop.core.errors import conflict, invalid_argument, not_found
from pitstop.core.schemas import ApiModel, MessageResponse, Pagination, paginate
from pitstop.database import get_db
from pitstop.models.content import Content
from pitstop.models.tag import Tag
from pitstop.models.user import User
from pitstop.routes.category_routes import normalize_slug
from pitstop.routes.tag_routes import TagResponse

router = APIRouter(tags=['content'])


class ContentCreateRequest(ApiModel):
    title: str
    slug: str
    body: str
    type: str
    is_published: bool = False
    meta_title: str | None = None
    meta_description: str | None = None
    tag_ids: list[int] = []

    @field_validator('title', 'body', 'type')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Missing required fields')
        return normalized

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, value: str) -> str:
        return normalize_slug(value)


class ContentUpdateRequest(ApiModel):
    title: str | None = None
    slug: str | None = None
    body: str | None = None
    type: str | None = None
    is_published: bool | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    tag_ids: list[int] | None = None

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, value: str | None) -> str | None:
        return None if value is None else normalize_slug(value)


class ContentResponse(ApiModel):
    id: int
    title: str
    slug: str
    body: str
    type: str
    is_published: bool
    meta_title: str | None = None
    meta_description: str | None = None
    author_id: int | None = None
    created_at: datetime | None = None
    tags: list[TagResponse] = []


class ContentListResponse(ApiModel):
    content: list[ContentResponse]
    pagination: Pagination


def resolve_tags(tag_ids: list[int], db: Session) -> list[Tag]:
    if not tag_ids:
        return []
    unique_ids = set(tag_ids)
    tags = db.query(Tag).filter(Tag.id.in_(unique_ids)).all()
    if len(tags) != len(unique_ids):
        raise invalid_argument('One or more tags do not exist')
    return tags


def get_content_or_404(content_id: int, db: Session) -> Content:
    content = db.query(Content).filter(Content.id == content_id).first()
    if not content:
        raise not_found('Content not found')
    return content


@router.get('', response_model=ContentListResponse)
def list_content(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    content_type: str | None = Query(default=None, alias='type'),
    is_published: bool = Query(default=False, alias='isPublished'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Content)
    if content_type:
        query = query.filter(Content.type == content_type)
    # Drafts are visible to admins only.
    if is_published or not current_user.is_admin:
        query = query.filter(Content.is_published.is_(True))

    items, pagination = paginate(query.order_by(Content.created_at.desc(), Content.id.desc()), page, limit)
    return ContentListResponse(content=items, pagination=pagination)


@router.post('', response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
def create_content(
    data: ContentCreateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if db.query(Content).filter(Content.slug == data.slug).first():
        raise conflict('Content with this slug already exists')

    content = Content(
        title=data.title,
        slug=data.slug,
        body=data.body,
        type=data.type,
        is_published=data.is_published,
        meta_title=data.meta_title,
        meta_description=data.meta_description,
        author_id=current_user.id,
        tags=resolve_tags(data.tag_ids, db),
    )
    db.add(content)
    db.commit()
    db.refresh(content)

    log_action('CONTENT_CREATED', data.slug, current_user.id)
    return content


@router.get('/{content_id}', response_model=ContentResponse)
def get_content(
    content_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    content = get_content_or_404(content_id, db)
    if not content.is_published and not current_user.is_admin:
        raise not_found('Content not found')
    return content


@router.patch('/{content_id}', response_model=ContentResponse)
def update_content(
    content_id: int,
    data: ContentUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    content = get_content_or_404(content_id, db)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    if changes.get('slug') and changes['slug'] != content.slug:
        if db.query(Content).filter(Content.slug == changes['slug'], Content.id != content.id).first():
            raise conflict('Content with this slug already exists')

    tag_ids = changes.pop('tag_ids', None)
    if tag_ids is not None:
        content.tags = resolve_tags(tag_ids, db)
    for field_name, value in changes.items():
        setattr(content, field_name, value)

    db.commit()
    db.refresh(content)

    log_action('CONTENT_UPDATED', str(content.id), current_user.id)
    return content


@router.delete('/{content_id}', response_model=MessageResponse)
def delete_content(
    content_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    content = get_content_or_404(content_id, db)
    db.delete(content)
    db.commit()

    log_action('CONTENT_DELETED', str(content_id), current_user.id)
    return MessageResponse(message='Content deleted successfully')
