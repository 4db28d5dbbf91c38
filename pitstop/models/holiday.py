"""Holiday model definitions."""

from sqlalchemy import Column, Date, Integer, String
from pitstop.database import Base


class Holiday(Base):
    """A calendar date on which nothing can be booked."""
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True)
    date = Column(Date, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String)
