"""
User Model
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from bugtracker.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    created_projects = relationship("Project", back_populates="created_by", foreign_keys="Project.created_by_id")
    project_memberships = relationship("ProjectMember", back_populates="user", cascade="all, delete-orphan")
    reported_bugs = relationship("Bug", back_populates="created_by", foreign_keys="Bug.created_by_id")
    assigned_bugs = relationship("Bug", back_populates="assigned_to", foreign_keys="Bug.assigned_to_id")
