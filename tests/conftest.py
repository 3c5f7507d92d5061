from typing import Dict, List, Set, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import bugtracker.models as models
from bugtracker.api.v1 import auth as auth_routes
from bugtracker.database import Base, get_db
from bugtracker.dependencies import get_commit_verifier
from bugtracker.main import app
from bugtracker.schemas import UserCreate
from bugtracker.services import membership
from bugtracker.services.commit_verifier import GitHubCommitVerifier

TEST_DATABASE_URL = "sqlite://"
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

GITHUB_API = "https://api.github.test"
REPO_URL = "https://github.com/acme/widgets"
REPORTED_COMMIT = "https://github.com/acme/widgets/commit/abc123def"
FIX_COMMIT = "https://github.com/acme/widgets/commit/zzz999"


class FakeGitHub:
    """In-memory stand-in for the GitHub REST endpoints the verifier calls."""

    def __init__(self):
        self.repos: Dict[Tuple[str, str], Set[str]] = {
            ("acme", "widgets"): {"abc123def", "zzz999", "fedcba987"},
        }
        self.requests: List[httpx.Request] = []
        self.unavailable = False

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unavailable:
            raise httpx.ConnectError("connection refused", request=request)

        parts = request.url.path.strip("/").split("/")
        if len(parts) < 3 or parts[0] != "repos":
            return httpx.Response(404, json={"message": "Not Found"})

        owner, repo = parts[1], parts[2]
        commits = self.repos.get((owner, repo))
        if commits is None:
            return httpx.Response(404, json={"message": "Not Found"})

        if len(parts) == 3:
            return httpx.Response(
                200,
                json={
                    "full_name": f"{owner}/{repo}",
                    "private": False,
                    "html_url": f"https://github.com/{owner}/{repo}",
                    "default_branch": "main",
                    "description": "Widgets",
                    "stargazers_count": 42,
                    "open_issues_count": 3,
                },
            )

        if len(parts) == 4 and parts[3] == "commits":
            per_page = int(request.url.params.get("per_page", "30"))
            return httpx.Response(200, json=[self._commit(owner, repo, sha) for sha in sorted(commits)][:per_page])

        if len(parts) == 5 and parts[3] == "commits":
            if parts[4] not in commits:
                return httpx.Response(422, json={"message": "No commit found for SHA"})
            return httpx.Response(200, json=self._commit(owner, repo, parts[4]))

        return httpx.Response(404, json={"message": "Not Found"})

    @staticmethod
    def _commit(owner: str, repo: str, sha: str) -> dict:
        return {
            "sha": sha,
            "html_url": f"https://github.com/{owner}/{repo}/commit/{sha}",
            "commit": {
                "message": f"commit {sha}",
                "author": {"name": "Ada", "date": "2024-01-01T00:00:00Z"},
            },
        }


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def verifier(github: FakeGitHub) -> GitHubCommitVerifier:
    return GitHubCommitVerifier(api_url=GITHUB_API, token="", transport=httpx.MockTransport(github.handle))


@pytest.fixture(autouse=True)
def db_session() -> Session:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session: Session, verifier: GitHubCommitVerifier):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_commit_verifier] = lambda: verifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def register_user(session: Session, email: str, name: str = None, password: str = "secret123") -> models.User:
    auth_routes.register(UserCreate(email=email, password=password, name=name), session)
    return session.query(models.User).filter(models.User.email == email).one()


def create_project(session: Session, owner: models.User, name: str = "Widgets", repo_url: str = REPO_URL):
    return membership.create_with_owner(session, name, repo_url, owner.id)
