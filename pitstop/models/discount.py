"""Discount model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from pitstop.database import Base


DISCOUNT_TYPES = ("PERCENTAGE", "FIXED")


class Discount(Base):
    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, nullable=False, index=True)
    type = Column(String, nullable=False)
    value = Column(Float, nullable=False)
    max_uses = Column(Integer)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    min_amount = Column(Float)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
