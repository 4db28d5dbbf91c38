from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import require_admin
from pitstop.core.audit import log_action
from pitstop.core.errors import conflict, not_found
from pitstop.core.schemas import ApiModel, MessageResponse
from pitstop.database import get_db
from pitstop.models.setting import Setting
from pitstop.models.user import User

router = APIRouter(tags=['settings'])


class SettingCreateRequest(ApiModel):
    key: str
    value: str
    category: str
    description: str | None = None
    is_public: bool = False

    @field_validator('key', 'value', 'category')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Key, value and category are required')
        return normalized


class SettingUpdateRequest(ApiModel):
    value: str | None = None
    category: str | None = None
    description: str | None = None
    is_public: bool | None = None


class SettingResponse(ApiModel):
    id: int
    key: str
    value: str
    category: str
    description: str | None = None
    is_public: bool


def get_setting_or_404(key: str, db: Session) -> Setting:
    setting = db.query(Setting).filter(Setting.key == key).first()
    if not setting:
        raise not_found('Setting not found')
    return setting


@router.get('', response_model=list[SettingResponse])
def list_settings(
    category: str | None = Query(default=None),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    query = db.query(Setting)
    if category:
        query = query.filter(Setting.category == category)
    return query.order_by(Setting.category.asc(), Setting.key.asc()).all()


@router.post('', response_model=SettingResponse, status_code=status.HTTP_201_CREATED)
def create_setting(
    data: SettingCreateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if db.query(Setting).filter(Setting.key == data.key).first():
        raise conflict('Setting key already exists')

    setting = Setting(**data.model_dump())
    db.add(setting)
    db.commit()
    db.refresh(setting)

    log_action('SETTING_CREATED', data.key, current_user.id)
    return setting


@router.get('/{key}', response_model=SettingResponse)
def get_setting(
    key: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    return get_setting_or_404(key, db)


@router.patch('/{key}', response_model=SettingResponse)
def update_setting(
    key: str,
    data: SettingUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    setting = get_setting_or_404(key, db)
    for field_name, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(setting, field_name, value)

    db.commit()
    db.refresh(setting)

    log_action('SETTING_UPDATED', key, current_user.id)
    return setting


@router.delete('/{key}', response_model=MessageResponse)
def delete_setting(
    key: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    setting = get_setting_or_404(key, db)
    db.delete(setting)
    db.commit()

    log_action('SETTING_DELETED', key, current_user.id)
    return MessageResponse(message='Setting deleted successfully')
