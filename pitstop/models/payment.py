"""Payment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from pitstop.database import Base


PAYMENT_PENDING = "PENDING"
PAYMENT_COMPLETED = "COMPLETED"
PAYMENT_FAILED = "FAILED"
PAYMENT_REFUNDED = "REFUNDED"


class Payment(Base):
    """A gateway payment attached to a booking."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), index=True)
    amount = Column(Float, nullable=False, default=0)
    status = Column(String, nullable=False, default=PAYMENT_PENDING)
    stripe_session_id = Column(String, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
