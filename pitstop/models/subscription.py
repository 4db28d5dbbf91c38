"""Subscription model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from pitstop.database import Base


SUBSCRIPTION_ACTIVE = "ACTIVE"
SUBSCRIPTION_CANCELLED = "CANCELLED"
SUBSCRIPTION_EXPIRED = "EXPIRED"
SUBSCRIPTION_STATUSES = (SUBSCRIPTION_ACTIVE, SUBSCRIPTION_CANCELLED, SUBSCRIPTION_EXPIRED)


class Subscription(Base):
    """A user's enrolment in a service plan."""
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default=SUBSCRIPTION_ACTIVE)
    start_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    end_date = Column(DateTime)
    auto_renew = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
