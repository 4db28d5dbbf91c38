from datetime import datetime

import pytest
from pydantic import ValidationError

from pitstop.core.errors import ApiError, ErrorKind
from pitstop.models.wallet import Wallet, WalletTransaction
from pitstop.routes.wallet_routes import TransactionRequest, create_transaction, get_wallet, list_transactions


def list_all_transactions(db, user, **filters):
    params = {
        'page': 1,
        'limit': 10,
        'transaction_type': None,
        'transaction_status': None,
        'start_date': None,
        'end_date': None,
    }
    params.update(filters)
    return list_transactions(current_user=user, db=db, **params)


def test_get_wallet_creates_empty_wallet_on_first_access(db, customer_user) -> None:
    wallet = get_wallet(current_user=customer_user, db=db)

    assert wallet.balance == 0
    assert wallet.transactions == []
    assert db.query(Wallet).filter(Wallet.user_id == customer_user.id).count() == 1

    get_wallet(current_user=customer_user, db=db)
    assert db.query(Wallet).count() == 1


def test_create_transaction_without_wallet_is_not_found(db, customer_user) -> None:
    with pytest.raises(ApiError) as exception_info:
        create_transaction(data=TransactionRequest(amount=10, type='DEPOSIT'), current_user=customer_user, db=db)

    assert exception_info.value.kind is ErrorKind.NOT_FOUND
    assert exception_info.value.message == 'Wallet not found'


def test_deposit_then_withdraw_updates_balance(db, customer_user) -> None:
    get_wallet(current_user=customer_user, db=db)

    create_transaction(data=TransactionRequest(amount=100, type='deposit'), current_user=customer_user, db=db)
    wallet = create_transaction(data=TransactionRequest(amount=30, type='WITHDRAW'), current_user=customer_user, db=db)

    assert wallet.balance == 70
    assert len(wallet.transactions) == 2


def test_debit_beyond_balance_is_rejected(db, customer_user) -> None:
    get_wallet(current_user=customer_user, db=db)
    create_transaction(data=TransactionRequest(amount=20, type='DEPOSIT'), current_user=customer_user, db=db)

    with pytest.raises(ApiError) as exception_info:
        create_transaction(data=TransactionRequest(amount=25, type='PAYMENT'), current_user=customer_user, db=db)

    assert exception_info.value.kind is ErrorKind.INVALID_ARGUMENT
    assert exception_info.value.message == 'Insufficient balance'
    assert db.query(WalletTransaction).count() == 1


def test_transaction_request_rejects_unknown_type_and_non_positive_amount() -> None:
    with pytest.raises(ValidationError):
        TransactionRequest(amount=5, type='GIFT')
    with pytest.raises(ValidationError):
        TransactionRequest(amount=0, type='DEPOSIT')


def test_get_wallet_returns_ten_latest_transactions(db, customer_user) -> None:
    get_wallet(current_user=customer_user, db=db)
    for amount in range(1, 13):
        create_transaction(data=TransactionRequest(amount=amount, type='DEPOSIT'), current_user=customer_user, db=db)

    wallet = get_wallet(current_user=customer_user, db=db)

    assert len(wallet.transactions) == 10
    assert wallet.balance == sum(range(1, 13))


def test_list_transactions_filters_by_type_and_date(db, customer_user) -> None:
    get_wallet(current_user=customer_user, db=db)
    create_transaction(data=TransactionRequest(amount=50, type='DEPOSIT'), current_user=customer_user, db=db)
    create_transaction(data=TransactionRequest(amount=5, type='WITHDRAW'), current_user=customer_user, db=db)

    deposits = list_all_transactions(db, customer_user, transaction_type='deposit')
    future = list_all_transactions(db, customer_user, start_date=datetime(2999, 1, 1))

    assert [transaction.type for transaction in deposits.transactions] == ['DEPOSIT']
    assert deposits.pagination.total == 1
    assert future.transactions == []
