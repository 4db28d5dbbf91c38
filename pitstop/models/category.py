"""Category model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String
from pitstop.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    description = Column(String)
    parent_id = Column(Integer, ForeignKey("categories.id"), index=True)
    order = Column(Integer, nullable=False, default=0)
    image = Column(String)
