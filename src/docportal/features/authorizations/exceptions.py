"""Domain exceptions for grants, grant resolution, and scope checks."""

from __future__ import annotations

from docportal.core.auth.errors import PermissionDeniedError


class StoreUnavailableError(Exception):
    """Raised when the authorization store cannot be reached."""


class GrantValidationError(Exception):
    """Raised when a grant payload is unusable (blank values, nothing to update)."""


class GrantConflictError(Exception):
    """Raised when a write would duplicate an existing (owner, bucket, path) grant."""


class UnknownGrantError(Exception):
    """Raised by administrative lookups when a grant record does not exist."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)


class NotAuthorizedError(PermissionDeniedError):
    """Raised when an identity holds no active grant."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__("No active authorization for this user")


class GrantNotFoundError(PermissionDeniedError):
    """Raised when a grant selector matches none of the caller's active grants."""

    def __init__(self, message: str = "Requested authorization not found for this user") -> None:
        super().__init__(message)


class GrantSelectionRequiredError(GrantNotFoundError):
    """Raised when several grants are active and the policy demands an explicit choice."""

    def __init__(self) -> None:
        super().__init__("Several authorizations are active; select one explicitly")


class ScopeDeniedError(PermissionDeniedError):
    """Raised when a path or file falls outside the resolved grant."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


__all__ = [
    "GrantConflictError",
    "GrantNotFoundError",
    "GrantSelectionRequiredError",
    "GrantValidationError",
    "NotAuthorizedError",
    "ScopeDeniedError",
    "StoreUnavailableError",
    "UnknownGrantError",
]
