"""Read-only GitHub lookups"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from bugtracker.dependencies import get_commit_verifier
from bugtracker.errors import ValidationError
from bugtracker.schemas import CommitInfo, CommitList, RepoInfo
from bugtracker.services.commit_verifier import DEFAULT_COMMIT_LIMIT, GitHubCommitVerifier

router = APIRouter()


@router.get("/github/repo-info", response_model=RepoInfo)
def repo_info(
    repo_url: Optional[str] = Query(None, alias="repoUrl"),
    verifier: GitHubCommitVerifier = Depends(get_commit_verifier),
):
    if not repo_url:
        raise ValidationError("repoUrl is required.")
    return verifier.fetch_repo_info(repo_url)


@router.get("/github/validate-commit", response_model=CommitInfo)
def validate_commit(
    repo_url: Optional[str] = Query(None, alias="repoUrl"),
    commit_url: Optional[str] = Query(None, alias="commitUrl"),
    verifier: GitHubCommitVerifier = Depends(get_commit_verifier),
):
    if not repo_url or not commit_url:
        raise ValidationError("repoUrl and commitUrl are required.")
    return verifier.validate_commit(repo_url, commit_url)


@router.get("/github/commits", response_model=CommitList)
def list_commits(
    repo_url: Optional[str] = Query(None, alias="repoUrl"),
    limit: Optional[str] = Query(None),
    verifier: GitHubCommitVerifier = Depends(get_commit_verifier),
):
    if not repo_url:
        raise ValidationError("repoUrl is required.")
    commits = verifier.list_commits(repo_url, limit if limit is not None else DEFAULT_COMMIT_LIMIT)
    return CommitList(commits=commits)
