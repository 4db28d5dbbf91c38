from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import get_current_user, require_admin
from pitstop.core.audit import log_action
from pitstop.core.errors import not_found
from pitstop.core.schemas import ApiModel, Pagination, paginate
from pitstop.database import get_db
from pitstop.models.content import Content
from pitstop.models.report import REPORT_STATUSES, Report
from pitstop.models.user import User

router = APIRouter(tags=['reports'])


class ReportCreateRequest(ApiModel):
    type: str
    content_id: int | None = None
    reason: str
    description: str | None = None

    @field_validator('type', 'reason')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Type and reason are required')
        return normalized


class ReportStatusUpdateRequest(ApiModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in REPORT_STATUSES:
            raise ValueError('Invalid report status.')
        return normalized


class ReportResponse(ApiModel):
    id: int
    user_id: int
    type: str
    content_id: int | None = None
    reason: str
    description: str | None = None
    status: str
    created_at: datetime | None = None


class ReportListResponse(ApiModel):
    reports: list[ReportResponse]
    pagination: Pagination


def get_report_or_404(report_id: int, db: Session) -> Report:
    report = db.query(Report).filter(Report.id == report_id).first()
    if not report:
        raise not_found('Report not found')
    return report


@router.get('', response_model=ReportListResponse)
def list_reports(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    report_type: str | None = Query(default=None, alias='type'),
    report_status: str | None = Query(default=None, alias='status'),
    user_id: int | None = Query(default=None, alias='userId'),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    query = db.query(Report)
    if report_type:
        query = query.filter(Report.type == report_type)
    if report_status:
        query = query.filter(Report.status == report_status.strip().upper())
    if user_id is not None:
        query = query.filter(Report.user_id == user_id)

    reports, pagination = paginate(query.order_by(Report.created_at.desc(), Report.id.desc()), page, limit)
    return ReportListResponse(reports=reports, pagination=pagination)


@router.post('', response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
def create_report(
    data: ReportCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if data.content_id is not None:
        if not db.query(Content).filter(Content.id == data.content_id).first():
            raise not_found('Content not found')

    report = Report(
        user_id=current_user.id,
        type=data.type,
        content_id=data.content_id,
        reason=data.reason,
        description=data.description,
        status='PENDING',
    )
    db.add(report)
    db.commit()
    db.refresh(report)

    log_action('REPORT_CREATED', f'{data.type}: {data.reason}', current_user.id)
    return report


@router.get('/{report_id}', response_model=ReportResponse)
def get_report(
    report_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del current_user
    return get_report_or_404(report_id, db)


@router.patch('/{report_id}', response_model=ReportResponse)
def update_report_status(
    report_id: int,
    data: ReportStatusUpdateRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    report = get_report_or_404(report_id, db)
    report.status = data.status
    db.commit()
    db.refresh(report)

    log_action('REPORT_UPDATED', f'{report.id} -> {data.status}', current_user.id)
    return report
