"""Schemas for bugs and their status history"""
from datetime import datetime
from typing import List, Optional

from bugtracker.models.bug import BugPriority, BugSeverity, BugStatus
from bugtracker.schemas.base import CamelModel
from bugtracker.schemas.user import UserSummary


class BugCreate(CamelModel):
    # Presence is checked by the lifecycle service so the caller gets one message
    severity: Optional[BugSeverity] = None
    priority: Optional[BugPriority] = None
    description: Optional[str] = None
    commit_url_reported: Optional[str] = None


class BugStatusChange(CamelModel):
    status: Optional[BugStatus] = None
    fix_commit_url: Optional[str] = None
    comment: Optional[str] = None


class BugResponse(CamelModel):
    id: int
    project_id: int
    created_by_id: int
    assigned_to_id: Optional[int] = None
    severity: BugSeverity
    priority: BugPriority
    description: str
    commit_url_reported: str
    status: BugStatus
    created_at: datetime
    created_by: Optional[UserSummary] = None
    assigned_to: Optional[UserSummary] = None


class BugStatusUpdateResponse(CamelModel):
    id: int
    bug_id: int
    status: BugStatus
    fix_commit_url: Optional[str] = None
    comment: Optional[str] = None
    created_by_id: int
    created_at: datetime
    created_by: Optional[UserSummary] = None


class BugEnvelope(CamelModel):
    bug: BugResponse


class BugList(CamelModel):
    bugs: List[BugResponse]


class BugStatusChangeResult(CamelModel):
    bug: BugResponse
    update: BugStatusUpdateResponse


class BugStatusUpdateList(CamelModel):
    updates: List[BugStatusUpdateResponse]
