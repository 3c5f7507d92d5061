"""Project, membership and per-project bug endpoints"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from bugtracker.database import get_db
from bugtracker.dependencies import get_commit_verifier, get_current_user
from bugtracker.models import User
from bugtracker.schemas import (
    BugCreate,
    BugEnvelope,
    BugList,
    BugResponse,
    MembershipEnvelope,
    ProjectCreate,
    ProjectDetail,
    ProjectDetailEnvelope,
    ProjectEnvelope,
    ProjectList,
    ProjectMemberDetail,
    ProjectMemberResponse,
    ProjectResponse,
    ProjectUpdate,
    ProjectWithRole,
)
from bugtracker.services import bug_lifecycle, membership
from bugtracker.services.commit_verifier import GitHubCommitVerifier

router = APIRouter()


@router.post("", response_model=ProjectDetailEnvelope, status_code=status.HTTP_201_CREATED)
def create_project(
    project_in: ProjectCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a project; the creator becomes its maintainer."""
    project = membership.create_with_owner(db, project_in.name, project_in.repo_url, current_user.id)
    return ProjectDetailEnvelope(project=ProjectDetail.model_validate(project))


@router.get("", response_model=ProjectList)
def list_projects(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the projects the caller belongs to, with the caller's role."""
    rows = membership.list_projects_for_user(db, current_user.id)
    return ProjectList(
        projects=[
            ProjectWithRole(**ProjectResponse.model_validate(project).model_dump(), role=role)
            for project, role in rows
        ]
    )


@router.patch("/{project_id}", response_model=ProjectEnvelope)
def update_project(
    project_id: int,
    project_update: ProjectUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = membership.update_project(
        db,
        project_id,
        current_user.id,
        name=project_update.name,
        repo_url=project_update.repo_url,
    )
    return ProjectEnvelope(project=ProjectResponse.model_validate(project))


@router.post("/{project_id}/join-tester", response_model=MembershipEnvelope, status_code=status.HTTP_201_CREATED)
def join_as_reporter(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    membership_row = membership.join(db, project_id, current_user.id)
    return MembershipEnvelope(membership=ProjectMemberResponse.model_validate(membership_row))


@router.get("/{project_id}/members", response_model=List[ProjectMemberDetail])
def list_members(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    members = membership.list_members(db, project_id, current_user.id)
    return [ProjectMemberDetail.model_validate(member) for member in members]


@router.post("/{project_id}/bugs", response_model=BugEnvelope, status_code=status.HTTP_201_CREATED)
def report_bug(
    project_id: int,
    bug_in: BugCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    verifier: GitHubCommitVerifier = Depends(get_commit_verifier),
):
    """File a bug (reporters only); the reported commit must exist in the project repo."""
    bug = bug_lifecycle.report(
        db,
        verifier,
        project_id,
        current_user.id,
        severity=bug_in.severity,
        priority=bug_in.priority,
        description=bug_in.description,
        commit_url_reported=bug_in.commit_url_reported,
    )
    return BugEnvelope(bug=BugResponse.model_validate(bug))


@router.get("/{project_id}/bugs", response_model=BugList)
def list_bugs(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List a project's bugs, newest first (maintainers only)."""
    bugs = bug_lifecycle.list_for_project(db, project_id, current_user.id)
    return BugList(bugs=[BugResponse.model_validate(bug) for bug in bugs])
