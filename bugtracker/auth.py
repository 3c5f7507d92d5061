"""Password hashing and bearer token helpers."""
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from bugtracker.config import settings
from bugtracker.errors import AuthenticationError

PASSWORD_ALGORITHM = "pbkdf2_sha256"


def _derive(password: str, salt: bytes, iterations: int) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations).hex()


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    iterations = iterations or settings.PASSWORD_HASH_ITERATIONS
    salt = secrets.token_bytes(16)
    return f"{PASSWORD_ALGORITHM}${iterations}${salt.hex()}${_derive(password, salt, iterations)}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        algorithm, iterations, salt_hex, expected = password_hash.split("$")
        if algorithm != PASSWORD_ALGORITHM:
            return False
        actual = _derive(password, bytes.fromhex(salt_hex), int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(actual, expected)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {"sub": str(user_id), "iat": now, "exp": expire}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    """Return the user id carried by ``token``."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid or expired token.")
