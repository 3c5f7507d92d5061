"""
Project membership rules.

Every protected operation asks this module who the caller is inside a
project. A user holds at most one role per project; the unique constraint on
``project_members`` is what enforces it, so a concurrent double join surfaces
as an ``IntegrityError`` that is reported the same way as a plain duplicate.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from bugtracker.errors import AuthorizationError, ConflictError, InternalError, NotFoundError, ValidationError
from bugtracker.models import Project, ProjectMember, ProjectRole
from bugtracker.services.commit_verifier import parse_repo_url

logger = logging.getLogger(__name__)


def get_project(db: Session, project_id: int) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if project is None:
        raise NotFoundError("Project not found.")
    return project


def get_membership(db: Session, project_id: int, user_id: int) -> Optional[ProjectMember]:
    return (
        db.query(ProjectMember)
        .filter(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
        .first()
    )


def get_role(db: Session, project_id: int, user_id: int) -> Optional[ProjectRole]:
    """Return the caller's role in the project, or None when not a member."""
    membership = get_membership(db, project_id, user_id)
    return membership.role if membership else None


def require_role(db: Session, project_id: int, user_id: int, roles: Iterable[ProjectRole]) -> ProjectMember:
    get_project(db, project_id)

    membership = get_membership(db, project_id, user_id)
    if membership is None:
        logger.warning("User %s is not a member of project %s", user_id, project_id)
        raise AuthorizationError("Not a member of this project.")

    if membership.role not in set(roles):
        logger.warning(
            "User %s has role %s in project %s, needs one of %s",
            user_id,
            membership.role.name,
            project_id,
            [role.name for role in roles],
        )
        raise AuthorizationError("Insufficient permissions.")

    return membership


def require_member(db: Session, project_id: int, user_id: int) -> ProjectMember:
    return require_role(db, project_id, user_id, (ProjectRole.MAINTAINER, ProjectRole.REPORTER))


def _clean_repo_url(repo_url: Optional[str]) -> str:
    repo_url = (repo_url or "").strip()
    if parse_repo_url(repo_url) is None:
        raise ValidationError("repoUrl must be a GitHub repository URL (https://github.com/OWNER/REPO).")
    return repo_url


def create_with_owner(db: Session, name: Optional[str], repo_url: Optional[str], user_id: int) -> Project:
    """Create a project and make its creator a maintainer in one transaction."""
    name = (name or "").strip()
    if not name or not (repo_url or "").strip():
        raise ValidationError("name and repoUrl are required.")
    repo_url = _clean_repo_url(repo_url)

    project = Project(name=name, repo_url=repo_url, created_by_id=user_id)
    project.members.append(ProjectMember(user_id=user_id, role=ProjectRole.MAINTAINER))
    db.add(project)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Could not create project for user %s", user_id)
        raise InternalError("Could not create the project.") from exc
    db.refresh(project)

    logger.info("Project %s created by user %s", project.id, user_id)
    return project


def join(db: Session, project_id: int, user_id: int) -> ProjectMember:
    """Join a project as a reporter; an existing membership of any role is a conflict."""
    get_project(db, project_id)

    existing = get_membership(db, project_id, user_id)
    if existing is not None:
        raise ConflictError(f"Already a member ({existing.role.value}).")

    membership = ProjectMember(project_id=project_id, user_id=user_id, role=ProjectRole.REPORTER)
    db.add(membership)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = get_membership(db, project_id, user_id)
        role = existing.role.value if existing else "unknown"
        logger.warning("Concurrent join for user %s in project %s", user_id, project_id)
        raise ConflictError(f"Already a member ({role}).")
    db.refresh(membership)

    logger.info("User %s joined project %s as reporter", user_id, project_id)
    return membership


def update_project(
    db: Session,
    project_id: int,
    user_id: int,
    name: Optional[str] = None,
    repo_url: Optional[str] = None,
) -> Project:
    require_role(db, project_id, user_id, (ProjectRole.MAINTAINER,))

    name = (name or "").strip()
    repo_url = (repo_url or "").strip()
    if not name and not repo_url:
        raise ValidationError("Provide at least one field: name or repoUrl.")

    if repo_url:
        repo_url = _clean_repo_url(repo_url)

    project = get_project(db, project_id)
    if name:
        project.name = name
    if repo_url:
        project.repo_url = repo_url
    db.commit()
    db.refresh(project)

    logger.info("Project %s updated by user %s", project_id, user_id)
    return project


def list_members(db: Session, project_id: int, user_id: int) -> List[ProjectMember]:
    require_member(db, project_id, user_id)
    return (
        db.query(ProjectMember)
        .options(selectinload(ProjectMember.user))
        .filter(ProjectMember.project_id == project_id)
        .order_by(ProjectMember.created_at.asc(), ProjectMember.id.asc())
        .all()
    )


def list_projects_for_user(db: Session, user_id: int) -> List[Tuple[Project, ProjectRole]]:
    rows = (
        db.query(Project, ProjectMember.role)
        .join(ProjectMember, ProjectMember.project_id == Project.id)
        .filter(ProjectMember.user_id == user_id)
        .order_by(Project.created_at.desc(), Project.id.desc())
        .all()
    )
    return [(project, role) for project, role in rows]
