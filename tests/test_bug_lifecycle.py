from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

import bugtracker.models as models
from bugtracker.errors import (
    AuthorizationError,
    ConflictError,
    ExternalValidationError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from bugtracker.models import BugPriority, BugSeverity, BugStatus
from bugtracker.services import bug_lifecycle, membership
from tests.conftest import FIX_COMMIT, REPORTED_COMMIT, create_project, register_user


@pytest.fixture
def team(db_session: Session):
    """A project with two maintainers and one reporter."""
    rita = register_user(db_session, "rita@example.com", "Rita")
    mia = register_user(db_session, "mia@example.com", "Mia")
    tom = register_user(db_session, "tom@example.com", "Tom")
    project = create_project(db_session, rita)
    db_session.add(models.ProjectMember(project_id=project.id, user_id=mia.id, role=models.ProjectRole.MAINTAINER))
    db_session.commit()
    membership.join(db_session, project.id, tom.id)
    return {"project": project, "rita": rita, "mia": mia, "tom": tom}


def _report(db_session, verifier, team, description="Crash on save", commit_url=REPORTED_COMMIT):
    return bug_lifecycle.report(
        db_session,
        verifier,
        team["project"].id,
        team["tom"].id,
        severity=BugSeverity.HIGH,
        priority=BugPriority.P2,
        description=description,
        commit_url_reported=commit_url,
    )


def _history(db_session, bug):
    return db_session.query(models.BugStatusUpdate).filter(models.BugStatusUpdate.bug_id == bug.id).all()


def test_report_creates_open_unassigned_bug(db_session, verifier, team):
    bug = _report(db_session, verifier, team)

    assert bug.status == BugStatus.OPEN
    assert bug.assigned_to_id is None
    assert bug.created_by_id == team["tom"].id
    assert bug.commit_url_reported == REPORTED_COMMIT
    assert bug.severity == BugSeverity.HIGH


def test_only_reporters_can_report(db_session, verifier, team):
    with pytest.raises(AuthorizationError):
        bug_lifecycle.report(
            db_session,
            verifier,
            team["project"].id,
            team["rita"].id,
            severity=BugSeverity.LOW,
            priority=BugPriority.P4,
            description="Typo",
            commit_url_reported=REPORTED_COMMIT,
        )


def test_report_requires_all_fields(db_session, verifier, team, github):
    with pytest.raises(ValidationError) as exc:
        bug_lifecycle.report(
            db_session, verifier, team["project"].id, team["tom"].id, BugSeverity.LOW, None, "Typo", REPORTED_COMMIT
        )
    assert exc.value.message == "severity, priority, description, commitUrlReported are required."
    assert github.requests == []


def test_report_with_malformed_commit_makes_no_github_call(db_session, verifier, team, github):
    with pytest.raises(ExternalValidationError) as exc:
        _report(db_session, verifier, team, commit_url="https://github.com/acme/widgets/issues/7")

    assert exc.value.message == "Invalid commitUrlReported: Invalid GitHub commitUrl format."
    assert github.requests == []
    assert db_session.query(models.Bug).count() == 0


def test_report_with_unknown_commit_is_rejected(db_session, verifier, team):
    with pytest.raises(ExternalValidationError) as exc:
        _report(db_session, verifier, team, commit_url="https://github.com/acme/widgets/commit/0000000000")

    assert "Commit not found in repo" in exc.value.message
    assert db_session.query(models.Bug).count() == 0


def test_report_fails_closed_when_github_is_down(db_session, verifier, team, github):
    github.unavailable = True
    with pytest.raises(ExternalValidationError):
        _report(db_session, verifier, team)
    assert db_session.query(models.Bug).count() == 0


def test_assign_to_self_is_idempotent_and_writes_no_history(db_session, verifier, team):
    bug = _report(db_session, verifier, team)

    first = bug_lifecycle.assign_to_self(db_session, bug.id, team["rita"].id)
    second = bug_lifecycle.assign_to_self(db_session, bug.id, team["rita"].id)

    assert (first.assigned_to_id, first.status) == (team["rita"].id, BugStatus.ASSIGNED)
    assert (second.assigned_to_id, second.status) == (team["rita"].id, BugStatus.ASSIGNED)
    assert _history(db_session, bug) == []


def test_second_maintainer_cannot_take_assigned_bug(db_session, verifier, team):
    bug = _report(db_session, verifier, team)
    bug_lifecycle.assign_to_self(db_session, bug.id, team["rita"].id)

    with pytest.raises(ConflictError) as exc:
        bug_lifecycle.assign_to_self(db_session, bug.id, team["mia"].id)
    assert exc.value.message == "Bug already assigned to another MP."

    db_session.expire_all()
    assert db_session.get(models.Bug, bug.id).assigned_to_id == team["rita"].id


def test_reporter_cannot_assign(db_session, verifier, team):
    bug = _report(db_session, verifier, team)
    with pytest.raises(AuthorizationError):
        bug_lifecycle.assign_to_self(db_session, bug.id, team["tom"].id)


def test_assign_unknown_bug(db_session, team):
    with pytest.raises(NotFoundError):
        bug_lifecycle.assign_to_self(db_session, 404, team["rita"].id)


def test_reporter_cannot_update_status_or_list(db_session, verifier, team):
    bug = _report(db_session, verifier, team)

    for status in (BugStatus.OPEN, BugStatus.ASSIGNED, BugStatus.FIXED):
        with pytest.raises(AuthorizationError):
            bug_lifecycle.update_status(db_session, verifier, bug.id, team["tom"].id, status, FIX_COMMIT)

    with pytest.raises(AuthorizationError):
        bug_lifecycle.list_for_project(db_session, team["project"].id, team["tom"].id)


def test_fixed_without_fix_commit_is_rejected(db_session, verifier, team, github):
    bug = _report(db_session, verifier, team)
    calls_before = len(github.requests)

    with pytest.raises(ValidationError) as exc:
        bug_lifecycle.update_status(db_session, verifier, bug.id, team["rita"].id, BugStatus.FIXED, comment="done")

    assert exc.value.message == "fixCommitUrl is required when status is FIXED."
    assert _history(db_session, bug) == []
    assert len(github.requests) == calls_before


def test_fixed_with_unverified_commit_leaves_bug_untouched(db_session, verifier, team):
    bug = _report(db_session, verifier, team)

    with pytest.raises(ExternalValidationError) as exc:
        bug_lifecycle.update_status(
            db_session,
            verifier,
            bug.id,
            team["rita"].id,
            BugStatus.FIXED,
            "https://github.com/acme/widgets/commit/1234567890",
        )

    assert exc.value.message.startswith("Invalid fixCommitUrl:")
    db_session.expire_all()
    assert db_session.get(models.Bug, bug.id).status == BugStatus.OPEN
    assert _history(db_session, bug) == []


def test_status_update_blocked_when_assigned_elsewhere(db_session, verifier, team):
    bug = _report(db_session, verifier, team)
    bug_lifecycle.assign_to_self(db_session, bug.id, team["rita"].id)

    with pytest.raises(ConflictError) as exc:
        bug_lifecycle.update_status(db_session, verifier, bug.id, team["mia"].id, BugStatus.FIXED, FIX_COMMIT)

    assert exc.value.message == "Bug is assigned to another MP."
    assert _history(db_session, bug) == []


def test_update_to_assigned_claims_the_bug(db_session, verifier, team):
    bug = _report(db_session, verifier, team)

    updated, update = bug_lifecycle.update_status(
        db_session, verifier, bug.id, team["mia"].id, BugStatus.ASSIGNED, comment="looking"
    )

    assert updated.status == BugStatus.ASSIGNED
    assert updated.assigned_to_id == team["mia"].id
    assert (update.status, update.comment, update.fix_commit_url) == (BugStatus.ASSIGNED, "looking", None)
    assert update.created_by_id == team["mia"].id


def test_fixing_an_unassigned_bug_assigns_the_fixer(db_session, verifier, team):
    bug = _report(db_session, verifier, team)

    updated, update = bug_lifecycle.update_status(
        db_session, verifier, bug.id, team["mia"].id, BugStatus.FIXED, FIX_COMMIT, "patched"
    )

    assert updated.status == BugStatus.FIXED
    assert updated.assigned_to_id == team["mia"].id
    assert update.fix_commit_url == FIX_COMMIT


def test_holder_can_record_a_second_fix(db_session, verifier, team):
    bug = _report(db_session, verifier, team)
    bug_lifecycle.update_status(db_session, verifier, bug.id, team["rita"].id, BugStatus.FIXED, FIX_COMMIT)

    follow_up = "https://github.com/acme/widgets/commit/fedcba987"
    updated, update = bug_lifecycle.update_status(
        db_session, verifier, bug.id, team["rita"].id, BugStatus.FIXED, follow_up, "follow-up"
    )

    assert (updated.status, updated.assigned_to_id) == (BugStatus.FIXED, team["rita"].id)
    assert (update.fix_commit_url, update.comment) == (follow_up, "follow-up")
    assert [u.fix_commit_url for u in _history(db_session, bug)] == [FIX_COMMIT, follow_up]


def test_holder_can_move_bug_back_to_open(db_session, verifier, team):
    bug = _report(db_session, verifier, team)
    bug_lifecycle.assign_to_self(db_session, bug.id, team["rita"].id)

    updated, update = bug_lifecycle.update_status(
        db_session, verifier, bug.id, team["rita"].id, BugStatus.OPEN, comment="needs repro"
    )

    assert updated.status == BugStatus.OPEN
    assert updated.assigned_to_id == team["rita"].id
    assert update.status == BugStatus.OPEN
    with pytest.raises(ConflictError):
        bug_lifecycle.assign_to_self(db_session, bug.id, team["mia"].id)


def test_fixed_bug_can_be_reopened_by_its_holder(db_session, verifier, team):
    bug = _report(db_session, verifier, team)
    bug_lifecycle.update_status(db_session, verifier, bug.id, team["rita"].id, BugStatus.FIXED, FIX_COMMIT)

    reopened, _ = bug_lifecycle.update_status(db_session, verifier, bug.id, team["rita"].id, BugStatus.ASSIGNED)
    assert reopened.status == BugStatus.ASSIGNED

    with pytest.raises(ConflictError):
        bug_lifecycle.update_status(db_session, verifier, bug.id, team["mia"].id, BugStatus.OPEN)
    assert [u.status for u in _history(db_session, bug)] == [BugStatus.FIXED, BugStatus.ASSIGNED]


def test_assign_to_self_moves_held_fixed_bug_back_to_assigned(db_session, verifier, team):
    bug = _report(db_session, verifier, team)
    bug_lifecycle.update_status(db_session, verifier, bug.id, team["rita"].id, BugStatus.FIXED, FIX_COMMIT)

    assigned = bug_lifecycle.assign_to_self(db_session, bug.id, team["rita"].id)

    assert (assigned.status, assigned.assigned_to_id) == (BugStatus.ASSIGNED, team["rita"].id)
    assert len(_history(db_session, bug)) == 1


def _snapshot(bug):
    return SimpleNamespace(id=bug.id, project_id=bug.project_id, assigned_to_id=bug.assigned_to_id, status=bug.status)


def _serve_stale_read(monkeypatch, snapshot):
    """First lookup returns ``snapshot``, as if it was read before a concurrent write."""
    real_get = bug_lifecycle.get_bug_or_404
    calls = []

    def get_bug_or_404(db, bug_id):
        calls.append(bug_id)
        return snapshot if len(calls) == 1 else real_get(db, bug_id)

    monkeypatch.setattr(bug_lifecycle, "get_bug_or_404", get_bug_or_404)


def test_assignment_race_first_writer_wins(db_session, verifier, team, monkeypatch):
    bug = _report(db_session, verifier, team)
    before = _snapshot(bug)
    bug_lifecycle.assign_to_self(db_session, bug.id, team["mia"].id)

    _serve_stale_read(monkeypatch, before)
    with pytest.raises(ConflictError) as exc:
        bug_lifecycle.assign_to_self(db_session, bug.id, team["rita"].id)
    monkeypatch.undo()

    assert exc.value.message == "Bug already assigned to another MP."
    db_session.expire_all()
    stored = db_session.get(models.Bug, bug.id)
    assert (stored.status, stored.assigned_to_id) == (BugStatus.ASSIGNED, team["mia"].id)
    assert _history(db_session, bug) == []


def test_status_change_race_writes_nothing(db_session, verifier, team, monkeypatch):
    bug = _report(db_session, verifier, team)
    before = _snapshot(bug)
    bug_lifecycle.assign_to_self(db_session, bug.id, team["mia"].id)

    _serve_stale_read(monkeypatch, before)
    with pytest.raises(ConflictError) as exc:
        bug_lifecycle.update_status(db_session, verifier, bug.id, team["rita"].id, BugStatus.ASSIGNED, comment="mine")
    monkeypatch.undo()

    assert exc.value.message == "Bug was changed by another MP; reload and try again."
    db_session.expire_all()
    assert db_session.get(models.Bug, bug.id).assigned_to_id == team["mia"].id
    assert _history(db_session, bug) == []


def test_update_status_requires_a_status(db_session, verifier, team):
    bug = _report(db_session, verifier, team)
    with pytest.raises(ValidationError):
        bug_lifecycle.update_status(db_session, verifier, bug.id, team["rita"].id, None)
    with pytest.raises(ValidationError):
        bug_lifecycle.update_status(db_session, verifier, bug.id, team["rita"].id, "CLOSED")


def test_list_for_project_newest_first_with_summaries(db_session, verifier, team):
    first = _report(db_session, verifier, team, description="first")
    second = _report(db_session, verifier, team, description="second")
    bug_lifecycle.assign_to_self(db_session, first.id, team["rita"].id)

    bugs = bug_lifecycle.list_for_project(db_session, team["project"].id, team["mia"].id)

    assert [bug.id for bug in bugs] == [second.id, first.id]
    assert bugs[1].created_by.email == "tom@example.com"
    assert bugs[1].assigned_to.name == "Rita"
    assert bugs[0].assigned_to is None


def test_status_history_is_append_only_trail(db_session, verifier, team):
    bug = _report(db_session, verifier, team)
    bug_lifecycle.update_status(db_session, verifier, bug.id, team["rita"].id, BugStatus.ASSIGNED, comment="mine")
    bug_lifecycle.update_status(db_session, verifier, bug.id, team["rita"].id, BugStatus.FIXED, FIX_COMMIT, "done")

    updates = bug_lifecycle.list_status_updates(db_session, bug.id, team["tom"].id)

    assert [(u.status, u.comment) for u in updates] == [(BugStatus.ASSIGNED, "mine"), (BugStatus.FIXED, "done")]
    assert updates[1].created_by.email == "rita@example.com"


def test_get_bug_requires_membership(db_session, verifier, team):
    outsider = register_user(db_session, "sam@example.com")
    bug = _report(db_session, verifier, team)

    assert bug_lifecycle.get_bug(db_session, bug.id, team["tom"].id).id == bug.id
    with pytest.raises(AuthorizationError):
        bug_lifecycle.get_bug(db_session, bug.id, outsider.id)


def test_store_failure_rolls_back_bug_and_history(db_session, verifier, team, monkeypatch):
    bug = _report(db_session, verifier, team)

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", failing_commit)
    with pytest.raises(InternalError):
        bug_lifecycle.update_status(db_session, verifier, bug.id, team["rita"].id, BugStatus.ASSIGNED, comment="x")
    monkeypatch.undo()

    db_session.expire_all()
    stored = db_session.get(models.Bug, bug.id)
    assert (stored.status, stored.assigned_to_id) == (BugStatus.OPEN, None)
    assert _history(db_session, bug) == []
