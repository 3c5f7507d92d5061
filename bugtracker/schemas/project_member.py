"""Schemas for project members"""
from datetime import datetime

from bugtracker.models.project_member import ProjectRole
from bugtracker.schemas.base import CamelModel
from bugtracker.schemas.user import UserSummary


class ProjectMemberResponse(CamelModel):
    id: int
    project_id: int
    user_id: int
    role: ProjectRole
    created_at: datetime


class ProjectMemberDetail(ProjectMemberResponse):
    user: UserSummary


class MembershipEnvelope(CamelModel):
    membership: ProjectMemberResponse
