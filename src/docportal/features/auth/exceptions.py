"""Domain exceptions for the identity-provider login proxy."""

from __future__ import annotations


class LoginError(Exception):
    """Base class for login proxy failures."""


class LoginNotConfiguredError(LoginError):
    """Raised when no identity-provider endpoint is configured."""


class LoginRejectedError(LoginError):
    """Raised when the identity provider refuses the credentials."""


class IdentityProviderError(LoginError):
    """Raised when the identity provider cannot be reached or answers garbage."""


__all__ = [
    "IdentityProviderError",
    "LoginError",
    "LoginNotConfiguredError",
    "LoginRejectedError",
]
