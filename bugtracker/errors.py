"""Error taxonomy shared by the services and the HTTP layer.

Every error carries a human-readable ``message`` that is safe to return to the
caller, and a ``status_code`` the API layer uses when rendering it.
"""
from fastapi import status


class BugTrackerError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BugTrackerError):
    """A required field is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(BugTrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(BugTrackerError):
    """Authenticated, but not a member or not the right role."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(BugTrackerError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(BugTrackerError):
    """Membership already exists, or the bug is held by another maintainer."""

    status_code = status.HTTP_409_CONFLICT


class ExternalValidationError(BugTrackerError):
    """A commit or repository failed verification against GitHub."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, reason: str = ""):
        super().__init__(message)
        self.reason = reason or message


class InternalError(BugTrackerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
