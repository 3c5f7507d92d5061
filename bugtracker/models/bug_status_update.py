"""Append-only status history for bugs"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from bugtracker.database import Base
from bugtracker.models.bug import BugStatus


class BugStatusUpdate(Base):
    __tablename__ = "bug_status_updates"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    bug_id = Column(Integer, ForeignKey("bugs.id"), nullable=False, index=True)
    status = Column(SQLEnum(BugStatus), nullable=False)
    fix_commit_url = Column(String(512), nullable=True)
    comment = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    bug = relationship("Bug", back_populates="status_updates")
    created_by = relationship("User", foreign_keys=[created_by_id])
