from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import require_admin
from pitstop.core.audit import log_action
from pitstop.core.errors import conflict, invalid_argument, not_found
from pitstop.core.schemas import ApiModel, MessageResponse
from pitstop.database import get_db
from pitstop.models.category import Category
from pitstop.models.user import User

router = APIRouter(tags=['categories'])


def normalize_slug(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized:
        raise ValueError('Name and slug are required')
    return normalized


class CategoryCreateRequest(ApiModel):
    name: str
    slug: str
    description: str | None = None
    parent_id: int | None = None
    order: int = 0
    image: str | None = None

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


class CategoryUpdateRequest(ApiModel):
    name: str | None = None
    slug: str | None = None
    description: str | None = None
    parent_id: int | None = None
    order: int | None = None
    image: str | None = None

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, value: str | None) -> str | None:
        return None if value is None else normalize_slug(value)


class CategoryResponse(ApiModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    parent_id: int | None = None
    order: int
    image: str | None = None
    children_count: int = 0


def to_response(category: Category, db: Session) -> CategoryResponse:
    children_count = db.query(Category).filter(Category.parent_id == category.id).count()
    response = CategoryResponse.model_validate(category)
    response.children_count = children_count
    return response


def get_category_or_404(category_id: int, db: Session, message: str = 'Category not found') -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise not_found(message)
    return category


def ensure_slug_available(slug: str, db: Session, exclude_id: int | None = None) -> None:
    query = db.query(Category).filter(Category.slug == slug)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise conflict('Category with this slug already exists')


@router.get('', response_model=list[CategoryResponse])
def list_categories(
    parent_id: int | None = Query(default=None, alias='parentId'),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Category)
    if parent_id is None:
        query = query.filter(Category.parent_id.is_(None))
    else:
        query = query.filter(Category.parent_id == parent_id)

    categories = query.order_by(Category.order.asc(), Category.id.asc()).all()
    log_action('CATEGORIES_VIEWED', None, current_user.id)
    return [to_response(category, db) for category in categories]


@router.post('', response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    data: CategoryCreateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_slug_available(data.slug, db)
    if data.parent_id is not None:
        get_category_or_404(data.parent_id, db, 'Parent category not found')

    category = Category(**data.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)

    log_action('CATEGORY_CREATED', f'{data.name} ({data.slug})', current_user.id)
    return to_response(category, db)


@router.get('/{category_id}', response_model=CategoryResponse)
def get_category(
    category_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    return to_response(get_category_or_404(category_id, db), db)


@router.patch('/{category_id}', response_model=CategoryResponse)
def update_category(
    category_id: int,
    data: CategoryUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    category = get_category_or_404(category_id, db)
    changes = data.model_dump(exclude_unset=True)

    if changes.get('slug') and changes['slug'] != category.slug:
        ensure_slug_available(changes['slug'], db, exclude_id=category.id)
    if changes.get('parent_id') is not None:
        if changes['parent_id'] == category.id:
            raise invalid_argument('A category cannot be its own parent')
        get_category_or_404(changes['parent_id'], db, 'Parent category not found')

    for field_name, value in changes.items():
        if value is not None or field_name == 'parent_id':
            setattr(category, field_name, value)

    db.commit()
    db.refresh(category)

    log_action('CATEGORY_UPDATED', str(category.id), current_user.id)
    return to_response(category, db)


@router.delete('/{category_id}', response_model=MessageResponse)
def delete_category(
    category_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    category = get_category_or_404(category_id, db)
    if db.query(Category).filter(Category.parent_id == category.id).count() > 0:
        raise invalid_argument('Cannot delete category with subcategories')

    db.delete(category)
    db.commit()

    log_action('CATEGORY_DELETED', str(category_id), current_user.id)
    return MessageResponse(message='Category deleted successfully')
