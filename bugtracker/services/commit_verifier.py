"""
GitHub commit verification.

Bug reports and fixes reference commits by URL. Before a report or a fix is
accepted the commit is looked up in the project's repository through the
GitHub REST API. Parsing is strict and happens locally: a malformed URL is
rejected without any request going out. Every failure (bad format, unknown
commit, GitHub unreachable) raises, so callers fail closed.
"""
import logging
import math
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from bugtracker.config import settings
from bugtracker.errors import ExternalValidationError
from bugtracker.schemas.integration import CommitInfo, CommitRef, RepoInfo, RepoRef

logger = logging.getLogger(__name__)

GITHUB_HOSTS = {"github.com", "www.github.com"}
MIN_HASH_LENGTH = 6
DEFAULT_COMMIT_LIMIT = 10
MAX_COMMIT_LIMIT = 30


class CommitVerificationError(ExternalValidationError):
    """GitHub did not confirm the repository or commit."""

    def __init__(self, reason: str, status_code: Optional[int] = None):
        super().__init__(reason, reason=reason)
        self.provider_status = status_code


class InvalidFormat(CommitVerificationError):
    """The URL could not be parsed; no request was made."""


def _path_parts(url: Optional[str]) -> Optional[List[str]]:
    if not url or not isinstance(url, str):
        return None
    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https"):
        return None
    if (parsed.hostname or "").lower() not in GITHUB_HOSTS:
        return None
    return [part for part in parsed.path.split("/") if part]


def parse_repo_url(repo_url: Optional[str]) -> Optional[RepoRef]:
    """Return owner/repo for ``https://github.com/OWNER/REPO[.git]``, else None."""
    parts = _path_parts(repo_url)
    if not parts or len(parts) < 2:
        return None
    repo = parts[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not repo:
        return None
    return RepoRef(owner=parts[0], repo=repo)


def parse_commit_url(commit_url: Optional[str]) -> Optional[CommitRef]:
    """Return owner/repo/sha for ``https://github.com/OWNER/REPO/commit/HASH``, else None."""
    parts = _path_parts(commit_url)
    if not parts or len(parts) < 4:
        return None
    if parts[2] != "commit":
        return None
    sha = parts[3]
    if len(sha) < MIN_HASH_LENGTH or not sha.isalnum():
        return None
    return CommitRef(owner=parts[0], repo=parts[1], sha=sha)


def clamp_commit_limit(limit: Any) -> int:
    try:
        value = float(limit)
    except (TypeError, ValueError):
        return DEFAULT_COMMIT_LIMIT
    # NaN and anything that truncates to zero fall back to the default
    if math.isnan(value) or -1 < value < 1:
        return DEFAULT_COMMIT_LIMIT
    return int(max(1, min(value, MAX_COMMIT_LIMIT)))


def _commit_info(payload: Dict[str, Any]) -> CommitInfo:
    commit = payload.get("commit") or {}
    author = commit.get("author") or {}
    return CommitInfo(
        sha=payload.get("sha"),
        html_url=payload.get("html_url"),
        message=commit.get("message"),
        author=author.get("name"),
        date=author.get("date"),
    )


class GitHubCommitVerifier:
    """Read-only client for the handful of GitHub endpoints the app needs."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_url = (api_url or settings.GITHUB_API_URL).rstrip("/")
        self.token = token if token is not None else settings.GITHUB_TOKEN
        self.timeout = timeout if timeout is not None else settings.GITHUB_TIMEOUT_SECONDS
        self.user_agent = user_agent or settings.GITHUB_USER_AGENT
        self._transport = transport

        if not self.token:
            logger.debug("GitHub token not configured, using unauthenticated requests")

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self.user_agent,
        }
        token = (self.token or "").strip()
        if token and token.isascii():
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            with httpx.Client(
                base_url=self.api_url,
                headers=self._headers(),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                return client.get(path, params=params)
        except httpx.HTTPError as exc:
            logger.error("GitHub request failed: %s %s", path, exc)
            raise CommitVerificationError(f"GitHub is unavailable: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.error("GitHub returned a non-JSON body for %s", response.request.url)
            raise CommitVerificationError("Unexpected response from GitHub.") from exc

    def _require_repo(self, repo_url: Optional[str]) -> RepoRef:
        repo = parse_repo_url(repo_url)
        if repo is None:
            raise InvalidFormat("Invalid GitHub repoUrl format.")
        return repo

    def fetch_repo_info(self, repo_url: str) -> RepoInfo:
        repo = self._require_repo(repo_url)
        response = self._get(f"/repos/{repo.owner}/{repo.repo}")
        if not response.is_success:
            raise CommitVerificationError(
                f"GitHub repo not found or not accessible (status {response.status_code}).",
                response.status_code,
            )

        data = self._json(response)
        if not isinstance(data, dict):
            raise CommitVerificationError("Unexpected response from GitHub.")
        return RepoInfo(
            full_name=data.get("full_name"),
            private=bool(data.get("private")),
            html_url=data.get("html_url"),
            default_branch=data.get("default_branch"),
            description=data.get("description"),
            stargazers_count=data.get("stargazers_count") or 0,
            open_issues_count=data.get("open_issues_count") or 0,
        )

    def validate_commit(self, repo_url: str, commit_url: str) -> CommitInfo:
        """Confirm ``commit_url`` names a commit that exists in ``repo_url``."""
        repo = self._require_repo(repo_url)

        commit = parse_commit_url(commit_url)
        if commit is None:
            raise InvalidFormat("Invalid GitHub commitUrl format.")
        if (commit.owner.lower(), commit.repo.lower()) != (repo.owner.lower(), repo.repo.lower()):
            raise InvalidFormat(
                f"Commit URL points at {commit.owner}/{commit.repo}, expected {repo.owner}/{repo.repo}."
            )

        response = self._get(f"/repos/{repo.owner}/{repo.repo}/commits/{commit.sha}")
        if not response.is_success:
            logger.info(
                "Commit %s not found in %s/%s (status %s)",
                commit.sha,
                repo.owner,
                repo.repo,
                response.status_code,
            )
            raise CommitVerificationError(
                f"Commit not found in repo (status {response.status_code}).",
                response.status_code,
            )

        payload = self._json(response)
        if not isinstance(payload, dict) or not payload.get("sha"):
            raise CommitVerificationError("Unexpected response from GitHub.")
        return _commit_info(payload)

    def list_commits(self, repo_url: str, limit: Any = DEFAULT_COMMIT_LIMIT) -> List[CommitInfo]:
        repo = self._require_repo(repo_url)
        per_page = clamp_commit_limit(limit)

        response = self._get(f"/repos/{repo.owner}/{repo.repo}/commits", params={"per_page": per_page})
        if not response.is_success:
            raise CommitVerificationError(
                f"Could not list commits (status {response.status_code}).",
                response.status_code,
            )

        payload = self._json(response)
        if not isinstance(payload, list):
            raise CommitVerificationError("Unexpected response from GitHub.")
        return [_commit_info(item) for item in payload if isinstance(item, dict)]
