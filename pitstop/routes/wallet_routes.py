import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field, field_validator
from sqlalchemy.orm import Session

from pitstop.auth.dependencies import get_current_user
from pitstop.core.audit import log_action
from pitstop.core.errors import invalid_argument, not_found
from pitstop.core.schemas import ApiModel, Pagination, paginate
from pitstop.database import get_db
from pitstop.models.user import User
from pitstop.models.wallet import CREDIT_TRANSACTION_TYPES, TRANSACTION_TYPES, Wallet, WalletTransaction

router = APIRouter(tags=['wallet'])

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS_LIMIT = 10


class TransactionRequest(ApiModel):
    amount: float = Field(gt=0)
    type: str
    description: str | None = None
    reference_id: str | None = None

    @field_validator('type')
    @classmethod
    def validate_type(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in TRANSACTION_TYPES:
            raise ValueError('Invalid transaction type.')
        return normalized


class TransactionResponse(ApiModel):
    id: int
    wallet_id: int
    amount: float
    type: str
    status: str
    description: str | None = None
    reference_id: str | None = None
    created_at: datetime | None = None


class WalletResponse(ApiModel):
    id: int
    user_id: int
    balance: float
    transactions: list[TransactionResponse] = []


class TransactionListResponse(ApiModel):
    transactions: list[TransactionResponse]
    pagination: Pagination


def get_or_create_wallet(user_id: int, db: Session) -> Wallet:
    wallet = db.query(Wallet).filter(Wallet.user_id == user_id).first()
    if wallet is None:
        wallet = Wallet(user_id=user_id, balance=0)
        db.add(wallet)
        db.commit()
        db.refresh(wallet)
        logger.info('Created wallet %s for user %s', wallet.id, user_id)
    return wallet


def recent_transactions(wallet: Wallet, db: Session) -> list[WalletTransaction]:
    return (
        db.query(WalletTransaction)
        .filter(WalletTransaction.wallet_id == wallet.id)
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
        .limit(RECENT_TRANSACTIONS_LIMIT)
        .all()
    )


def to_wallet_response(wallet: Wallet, db: Session) -> WalletResponse:
    return WalletResponse(
        id=wallet.id,
        user_id=wallet.user_id,
        balance=wallet.balance,
        transactions=recent_transactions(wallet, db),
    )


@router.get('', response_model=WalletResponse)
def get_wallet(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    wallet = get_or_create_wallet(current_user.id, db)
    return to_wallet_response(wallet, db)


@router.post('', response_model=WalletResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    data: TransactionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    wallet = db.query(Wallet).filter(Wallet.user_id == current_user.id).first()
    if wallet is None:
        raise not_found('Wallet not found')

    if data.type in CREDIT_TRANSACTION_TYPES:
        wallet.balance = wallet.balance + data.amount
    else:
        if wallet.balance < data.amount:
            raise invalid_argument('Insufficient balance')
        wallet.balance = wallet.balance - data.amount

    db.add(WalletTransaction(
        wallet_id=wallet.id,
        amount=data.amount,
        type=data.type,
        status='COMPLETED',
        description=data.description,
        reference_id=data.reference_id,
    ))
    db.commit()
    db.refresh(wallet)

    log_action('WALLET_TRANSACTION', f'{data.type} {data.amount}', current_user.id)
    return to_wallet_response(wallet, db)


@router.get('/transactions', response_model=TransactionListResponse)
def list_transactions(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    transaction_type: str | None = Query(default=None, alias='type'),
    transaction_status: str | None = Query(default=None, alias='status'),
    start_date: datetime | None = Query(default=None, alias='startDate'),
    end_date: datetime | None = Query(default=None, alias='endDate'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    wallet = db.query(Wallet).filter(Wallet.user_id == current_user.id).first()
    if wallet is None:
        raise not_found('Wallet not found')

    query = db.query(WalletTransaction).filter(WalletTransaction.wallet_id == wallet.id)
    if transaction_type:
        query = query.filter(WalletTransaction.type == transaction_type.strip().upper())
    if transaction_status:
        query = query.filter(WalletTransaction.status == transaction_status.strip().upper())
    if start_date is not None:
        query = query.filter(WalletTransaction.created_at >= start_date)
    if end_date is not None:
        query = query.filter(WalletTransaction.created_at <= end_date)

    query = query.order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
    transactions, pagination = paginate(query, page, limit)
    return TransactionListResponse(transactions=transactions, pagination=pagination)
