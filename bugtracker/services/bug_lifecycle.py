"""
Bug lifecycle: OPEN -> ASSIGNED -> FIXED.

Reporters file bugs; maintainers claim and move them forward. Only one
maintainer holds a bug at a time. Assignment and status writes are
conditional UPDATEs on the bug row (``assigned_to_id`` must be empty or the
caller), so when two maintainers race the first write wins and the second
gets a conflict.

The holder may set any status, including moving a FIXED bug back or
recording a second fix commit. A status change and its history row are
committed together.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from bugtracker.errors import (
    BugTrackerError,
    ConflictError,
    ExternalValidationError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from bugtracker.models import Bug, BugPriority, BugSeverity, BugStatus, BugStatusUpdate, ProjectRole
from bugtracker.services import membership
from bugtracker.services.commit_verifier import CommitVerificationError, GitHubCommitVerifier

logger = logging.getLogger(__name__)


def _bug_query(db: Session):
    return db.query(Bug).options(
        selectinload(Bug.created_by),
        selectinload(Bug.assigned_to),
    )


def get_bug_or_404(db: Session, bug_id: int) -> Bug:
    bug = _bug_query(db).filter(Bug.id == bug_id).first()
    if bug is None:
        raise NotFoundError("Bug not found.")
    return bug


def _verify_commit(verifier: GitHubCommitVerifier, repo_url: str, commit_url: str, field: str) -> None:
    try:
        verifier.validate_commit(repo_url, commit_url)
    except CommitVerificationError as exc:
        logger.warning("Rejected %s %r: %s", field, commit_url, exc.reason)
        raise ExternalValidationError(f"Invalid {field}: {exc.reason}", reason=exc.reason) from exc


def _claimable_by(bug_id: int, user_id: int):
    return (
        Bug.id == bug_id,
        or_(Bug.assigned_to_id.is_(None), Bug.assigned_to_id == user_id),
    )


def report(
    db: Session,
    verifier: GitHubCommitVerifier,
    project_id: int,
    reporter_id: int,
    severity: Optional[BugSeverity],
    priority: Optional[BugPriority],
    description: Optional[str],
    commit_url_reported: Optional[str],
) -> Bug:
    """File a new OPEN bug after checking the reported commit exists in the project repo."""
    reporter = membership.require_role(db, project_id, reporter_id, (ProjectRole.REPORTER,))

    description = (description or "").strip()
    commit_url_reported = (commit_url_reported or "").strip()
    if not severity or not priority or not description or not commit_url_reported:
        raise ValidationError("severity, priority, description, commitUrlReported are required.")

    try:
        severity = BugSeverity(severity)
        priority = BugPriority(priority)
    except ValueError:
        raise ValidationError("severity must be LOW|MEDIUM|HIGH|CRITICAL and priority P1..P4.")

    project = reporter.project
    _verify_commit(verifier, project.repo_url, commit_url_reported, "commitUrlReported")

    bug = Bug(
        project_id=project.id,
        created_by_id=reporter_id,
        severity=severity,
        priority=priority,
        description=description,
        commit_url_reported=commit_url_reported,
        status=BugStatus.OPEN,
    )
    db.add(bug)
    db.commit()

    logger.info("Bug %s reported in project %s by user %s", bug.id, project_id, reporter_id)
    return get_bug_or_404(db, bug.id)


def assign_to_self(db: Session, bug_id: int, user_id: int) -> Bug:
    """Claim a bug and mark it ASSIGNED.

    Repeating the call on a bug the caller already holds in ASSIGNED changes
    nothing; a held bug in any other status is moved back to ASSIGNED.
    """
    bug = get_bug_or_404(db, bug_id)
    membership.require_role(db, bug.project_id, user_id, (ProjectRole.MAINTAINER,))

    if bug.assigned_to_id is not None and bug.assigned_to_id != user_id:
        raise ConflictError("Bug already assigned to another MP.")
    if bug.assigned_to_id == user_id and bug.status == BugStatus.ASSIGNED:
        return bug

    updated = (
        db.query(Bug)
        .filter(*_claimable_by(bug_id, user_id))
        .update(
            {Bug.assigned_to_id: user_id, Bug.status: BugStatus.ASSIGNED},
            synchronize_session=False,
        )
    )
    if updated != 1:
        db.rollback()
        logger.warning("Lost assignment race for bug %s (user %s)", bug_id, user_id)
        raise ConflictError("Bug already assigned to another MP.")
    db.commit()

    logger.info("Bug %s assigned to user %s", bug_id, user_id)
    db.expire_all()
    return get_bug_or_404(db, bug_id)


def update_status(
    db: Session,
    verifier: GitHubCommitVerifier,
    bug_id: int,
    user_id: int,
    new_status: Optional[BugStatus],
    fix_commit_url: Optional[str] = None,
    comment: Optional[str] = None,
) -> Tuple[Bug, BugStatusUpdate]:
    """Move a bug to ``new_status`` and append the matching history row.

    ASSIGNED claims the bug for the caller; FIXED needs a fix commit that
    exists in the project repo and leaves the bug assigned to the caller when
    nobody held it. OPEN keeps the current assignee.
    """
    if not new_status:
        raise ValidationError("status is required.")
    try:
        new_status = BugStatus(new_status)
    except ValueError:
        raise ValidationError("status must be one of OPEN, ASSIGNED, FIXED.")

    bug = get_bug_or_404(db, bug_id)
    maintainer = membership.require_role(db, bug.project_id, user_id, (ProjectRole.MAINTAINER,))

    fix_commit_url = (fix_commit_url or "").strip() or None
    comment = (comment or "").strip() or None
    if new_status == BugStatus.FIXED and not fix_commit_url:
        raise ValidationError("fixCommitUrl is required when status is FIXED.")

    if bug.assigned_to_id is not None and bug.assigned_to_id != user_id:
        raise ConflictError("Bug is assigned to another MP.")

    if new_status == BugStatus.FIXED:
        _verify_commit(verifier, maintainer.project.repo_url, fix_commit_url, "fixCommitUrl")

    values = {Bug.status: new_status}
    if new_status in (BugStatus.ASSIGNED, BugStatus.FIXED):
        # the guard below only lets through bugs that are unassigned or already the caller's
        values[Bug.assigned_to_id] = user_id

    try:
        updated = (
            db.query(Bug)
            .filter(*_claimable_by(bug_id, user_id))
            .update(values, synchronize_session=False)
        )
        if updated != 1:
            raise ConflictError("Bug was changed by another MP; reload and try again.")

        update = BugStatusUpdate(
            bug_id=bug_id,
            status=new_status,
            fix_commit_url=fix_commit_url,
            comment=comment,
            created_by_id=user_id,
        )
        db.add(update)
        db.commit()
    except BugTrackerError:
        db.rollback()
        logger.warning("Status change for bug %s to %s rolled back", bug_id, new_status.value)
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Could not record status change for bug %s", bug_id)
        raise InternalError("Could not record the status change.") from exc

    logger.info("Bug %s moved to %s by user %s", bug_id, new_status.value, user_id)
    db.expire_all()
    db.refresh(update)
    return get_bug_or_404(db, bug_id), update


def list_for_project(db: Session, project_id: int, caller_id: int) -> List[Bug]:
    membership.require_role(db, project_id, caller_id, (ProjectRole.MAINTAINER,))
    return (
        _bug_query(db)
        .filter(Bug.project_id == project_id)
        .order_by(Bug.created_at.desc(), Bug.id.desc())
        .all()
    )


def get_bug(db: Session, bug_id: int, caller_id: int) -> Bug:
    bug = get_bug_or_404(db, bug_id)
    membership.require_member(db, bug.project_id, caller_id)
    return bug


def list_status_updates(db: Session, bug_id: int, caller_id: int) -> List[BugStatusUpdate]:
    bug = get_bug(db, bug_id, caller_id)
    return (
        db.query(BugStatusUpdate)
        .options(selectinload(BugStatusUpdate.created_by))
        .filter(BugStatusUpdate.bug_id == bug.id)
        .order_by(BugStatusUpdate.created_at.asc(), BugStatusUpdate.id.asc())
        .all()
    )
