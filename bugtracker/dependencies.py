"""FastAPI dependencies shared by the routers."""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from bugtracker.auth import decode_access_token
from bugtracker.database import get_db
from bugtracker.errors import AuthenticationError
from bugtracker.models import User
from bugtracker.services.commit_verifier import GitHubCommitVerifier

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing Authorization header.")

    user_id = decode_access_token(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise AuthenticationError("Invalid or expired token.")
    return user


def get_commit_verifier() -> GitHubCommitVerifier:
    return GitHubCommitVerifier()
