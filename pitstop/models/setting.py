"""Setting model definitions."""

from sqlalchemy import Boolean, Column, Integer, String, Text
from pitstop.database import Base


class Setting(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True)
    key = Column(String, unique=True, nullable=False, index=True)
    value = Column(Text, nullable=False)
    category = Column(String, nullable=False, index=True)
    description = Column(String)
    is_public = Column(Boolean, nullable=False, default=False)
