"""
Bug Model
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from bugtracker.database import Base


class BugSeverity(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class BugPriority(str, enum.Enum):
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"
    P4 = "P4"


class BugStatus(str, enum.Enum):
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    FIXED = "FIXED"


class Bug(Base):
    __tablename__ = "bugs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    severity = Column(SQLEnum(BugSeverity), nullable=False)
    priority = Column(SQLEnum(BugPriority), nullable=False)
    description = Column(Text, nullable=False)
    commit_url_reported = Column(String(512), nullable=False)
    status = Column(SQLEnum(BugStatus), default=BugStatus.OPEN, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    project = relationship("Project", back_populates="bugs")
    created_by = relationship("User", back_populates="reported_bugs", foreign_keys=[created_by_id])
    assigned_to = relationship("User", back_populates="assigned_bugs", foreign_keys=[assigned_to_id])
    status_updates = relationship(
        "BugStatusUpdate",
        back_populates="bug",
        cascade="all, delete-orphan",
        order_by="BugStatusUpdate.id",
    )
