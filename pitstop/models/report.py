"""Problem report model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from pitstop.database import Base


REPORT_STATUSES = ("PENDING", "REVIEWED", "RESOLVED", "REJECTED")


class Report(Base):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String, nullable=False)
    content_id = Column(Integer, ForeignKey("content.id"))
    reason = Column(String, nullable=False)
    description = Column(Text)
    status = Column(String, nullable=False, default="PENDING")
    created_at = Column(DateTime, default=datetime.utcnow)
