"""
Pydantic schemas for request/response validation
"""
from bugtracker.schemas.user import AuthResponse, MeResponse, UserCreate, UserLogin, UserResponse, UserSummary
from bugtracker.schemas.project import (
    ProjectCreate,
    ProjectDetail,
    ProjectDetailEnvelope,
    ProjectEnvelope,
    ProjectList,
    ProjectResponse,
    ProjectUpdate,
    ProjectWithRole,
)
from bugtracker.schemas.project_member import MembershipEnvelope, ProjectMemberDetail, ProjectMemberResponse
from bugtracker.schemas.bug import (
    BugCreate,
    BugEnvelope,
    BugList,
    BugResponse,
    BugStatusChange,
    BugStatusChangeResult,
    BugStatusUpdateList,
    BugStatusUpdateResponse,
)
from bugtracker.schemas.integration import CommitInfo, CommitList, RepoInfo

__all__ = [
    "AuthResponse",
    "MeResponse",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "UserSummary",
    "ProjectCreate",
    "ProjectDetail",
    "ProjectDetailEnvelope",
    "ProjectEnvelope",
    "ProjectList",
    "ProjectResponse",
    "ProjectUpdate",
    "ProjectWithRole",
    "MembershipEnvelope",
    "ProjectMemberDetail",
    "ProjectMemberResponse",
    "BugCreate",
    "BugEnvelope",
    "BugList",
    "BugResponse",
    "BugStatusChange",
    "BugStatusChangeResult",
    "BugStatusUpdateList",
    "BugStatusUpdateResponse",
    "CommitInfo",
    "CommitList",
    "RepoInfo",
]
