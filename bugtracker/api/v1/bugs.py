"""Bug triage endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bugtracker.database import get_db
from bugtracker.dependencies import get_commit_verifier, get_current_user
from bugtracker.models import User
from bugtracker.schemas import (
    BugEnvelope,
    BugResponse,
    BugStatusChange,
    BugStatusChangeResult,
    BugStatusUpdateList,
    BugStatusUpdateResponse,
)
from bugtracker.services import bug_lifecycle
from bugtracker.services.commit_verifier import GitHubCommitVerifier

router = APIRouter()


@router.get("/{bug_id}", response_model=BugEnvelope)
def get_bug(
    bug_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bug = bug_lifecycle.get_bug(db, bug_id, current_user.id)
    return BugEnvelope(bug=BugResponse.model_validate(bug))


@router.get("/{bug_id}/status-updates", response_model=BugStatusUpdateList)
def list_status_updates(
    bug_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updates = bug_lifecycle.list_status_updates(db, bug_id, current_user.id)
    return BugStatusUpdateList(updates=[BugStatusUpdateResponse.model_validate(update) for update in updates])


@router.post("/{bug_id}/assign-to-me", response_model=BugEnvelope)
def assign_to_me(
    bug_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Claim a bug; only one maintainer can hold it."""
    bug = bug_lifecycle.assign_to_self(db, bug_id, current_user.id)
    return BugEnvelope(bug=BugResponse.model_validate(bug))


@router.post("/{bug_id}/status", response_model=BugStatusChangeResult)
def change_status(
    bug_id: int,
    change: BugStatusChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    verifier: GitHubCommitVerifier = Depends(get_commit_verifier),
):
    """Record a status change; FIXED requires a verified fixCommitUrl."""
    bug, update = bug_lifecycle.update_status(
        db,
        verifier,
        bug_id,
        current_user.id,
        change.status,
        fix_commit_url=change.fix_commit_url,
        comment=change.comment,
    )
    return BugStatusChangeResult(
        bug=BugResponse.model_validate(bug),
        update=BugStatusUpdateResponse.model_validate(update),
    )
