"""Error taxonomy shared by the adapters, registry, store and API."""

from __future__ import annotations

__all__ = [
    "TeamTaskError",
    "ValidationError",
    "ConflictError",
    "DuplicateEmailError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "NotMemberError",
    "TeamNotFoundError",
    "UserNotFoundError",
    "BackendUnavailableError",
]


class TeamTaskError(Exception):
    """Base class for errors reported to API clients."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TeamTaskError):
    status_code = 400
    code = "validation_error"
    default_message = "Required fields are missing or invalid"


class ConflictError(TeamTaskError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists"


class DuplicateEmailError(ConflictError):
    code = "duplicate_email"
    default_message = "This email address is already registered"


class InvalidCredentialsError(TeamTaskError):
    status_code = 401
    code = "invalid_credentials"
    default_message = "Email address or password is incorrect"


class InvalidTokenError(TeamTaskError):
    status_code = 401
    code = "invalid_token"
    default_message = "A valid access token is required"


class NotMemberError(TeamTaskError):
    status_code = 403
    code = "not_member"
    default_message = "Not a member of any team"


class TeamNotFoundError(TeamTaskError):
    status_code = 404
    code = "team_not_found"
    default_message = "Team not found"


class UserNotFoundError(TeamTaskError):
    status_code = 404
    code = "user_not_found"
    default_message = "User not found"


class BackendUnavailableError(TeamTaskError):
    status_code = 503
    code = "backend_unavailable"
    default_message = "Storage backend is unavailable"
