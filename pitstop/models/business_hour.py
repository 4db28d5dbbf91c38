"""Business hour model definitions."""

from sqlalchemy import Boolean, Column, Integer, Time
from pitstop.database import Base


class BusinessHour(Base):
    """Opening hours for one day of the week."""
    __tablename__ = "business_hours"

    id = Column(Integer, primary_key=True)
    day_of_week = Column(Integer, unique=True, nullable=False)
    open_time = Column(Time, nullable=False)
    close_time = Column(Time, nullable=False)
    is_closed = Column(Boolean, nullable=False, default=False)
