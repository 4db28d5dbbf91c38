"""Wallet model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from pitstop.database import Base


CREDIT_TRANSACTION_TYPES = ("DEPOSIT", "REFUND")
DEBIT_TRANSACTION_TYPES = ("WITHDRAW", "PAYMENT")
TRANSACTION_TYPES = CREDIT_TRANSACTION_TYPES + DEBIT_TRANSACTION_TYPES


class Wallet(Base):
    """Stored balance of one user."""
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    balance = Column(Float, nullable=False, default=0)


class WalletTransaction(Base):
    """One credit or debit applied to a wallet."""
    __tablename__ = "wallet_transactions"

    id = Column(Integer, primary_key=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    type = Column(String, nullable=False)
    status = Column(String, nullable=False, default="COMPLETED")
    description = Column(String)
    reference_id = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
