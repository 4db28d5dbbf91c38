"""Tag model definitions."""

from sqlalchemy import Boolean, Column, Integer, String
from pitstop.database import Base


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    description = Column(String)
    color = Column(String)
    is_active = Column(Boolean, nullable=False, default=True)
