import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import ensure_owner_or_admin, get_current_user
from pitstop.core import config
from pitstop.core.errors import invalid_argument, not_found
from pitstop.core.schemas import ApiModel
from pitstop.database import get_db
from pitstop.models.payment import Payment
from pitstop.models.user import User
from pitstop.services import webhook_security
from pitstop.services.payment_events import apply_payment_event

payments_router = APIRouter(tags=['payments'])
webhook_router = APIRouter(tags=['payments'])

logger = logging.getLogger(__name__)


class PaymentResponse(ApiModel):
    id: int
    user_id: int | None = None
    booking_id: int | None = None
    amount: float
    status: str
    stripe_session_id: str | None = None
    created_at: datetime | None = None


class WebhookAck(ApiModel):
    received: bool = True


@payments_router.get('', response_model=list[PaymentResponse])
def list_payments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Payment)
    if not current_user.is_admin:
        query = query.filter(Payment.user_id == current_user.id)
    return query.order_by(Payment.created_at.desc(), Payment.id.desc()).all()


@payments_router.get('/{payment_id}', response_model=PaymentResponse)
def get_payment(
    payment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise not_found('Payment not found')
    ensure_owner_or_admin(current_user, payment.user_id)
    return payment


def process_webhook(payload: bytes, signature: str | None, db: Session) -> WebhookAck:
    if not signature:
        raise invalid_argument('Missing stripe-signature header')

    try:
        event = webhook_security.construct_event(payload, signature, config.STRIPE_WEBHOOK_SECRET)
    except webhook_security.WebhookSignatureError as exc:
        raise invalid_argument('Webhook signature verification failed') from exc

    apply_payment_event(db, event)
    return WebhookAck()


@webhook_router.post('/webhook', response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias='Stripe-Signature'),
    db: Session = Depends(get_db),
):
    payload = await request.body()
    return process_webhook(payload, stripe_signature, db)
