"""User model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from pitstop.database import Base


ROLE_CUSTOMER = "CUSTOMER"
ROLE_PROVIDER = "PROVIDER"
ROLE_ADMIN = "ADMIN"
USER_ROLES = (ROLE_CUSTOMER, ROLE_PROVIDER, ROLE_ADMIN)


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    phone = Column(String)
    hashed_password = Column(String, nullable=False, default="")
    role = Column(String, nullable=False, default=ROLE_CUSTOMER)  # CUSTOMER/PROVIDER/ADMIN
    image = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
