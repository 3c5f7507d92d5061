"""Schemas for projects"""
from datetime import datetime
from typing import List, Optional

from bugtracker.models.project_member import ProjectRole
from bugtracker.schemas.base import CamelModel
from bugtracker.schemas.project_member import ProjectMemberResponse


class ProjectCreate(CamelModel):
    name: str
    repo_url: str


class ProjectUpdate(CamelModel):
    name: Optional[str] = None
    repo_url: Optional[str] = None


class ProjectResponse(CamelModel):
    id: int
    name: str
    repo_url: str
    created_by_id: int
    created_at: datetime


class ProjectDetail(ProjectResponse):
    members: List[ProjectMemberResponse] = []


class ProjectWithRole(ProjectResponse):
    role: ProjectRole


class ProjectEnvelope(CamelModel):
    project: ProjectResponse


class ProjectDetailEnvelope(CamelModel):
    project: ProjectDetail


class ProjectList(CamelModel):
    projects: List[ProjectWithRole]
