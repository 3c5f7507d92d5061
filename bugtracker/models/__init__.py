"""Bug Tracker database models"""
from bugtracker.models.user import User
from bugtracker.models.project import Project
from bugtracker.models.project_member import ProjectMember, ProjectRole
from bugtracker.models.bug import Bug, BugPriority, BugSeverity, BugStatus
from bugtracker.models.bug_status_update import BugStatusUpdate

__all__ = [
    "User",
    "Project",
    "ProjectMember",
    "ProjectRole",
    "Bug",
    "BugPriority",
    "BugSeverity",
    "BugStatus",
    "BugStatusUpdate",
]
