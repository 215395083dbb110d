"""Shared auth/permission error types."""

from __future__ import annotations

from typing import Literal

AuthFailure = Literal["missing", "invalid", "expired", "inconsistent"]

AUTH_REQUIRED = "Authentication required"
INVALID_TOKEN = "Invalid or expired token"
INCONSISTENT_TOKENS = "Inconsistent tokens"


class AuthenticationError(Exception):
    """Raised when a request cannot be authenticated.

    ``reason`` is for logs only; the message shown to callers stays generic.
    """

    def __init__(self, message: str = AUTH_REQUIRED, *, reason: AuthFailure = "missing") -> None:
        super().__init__(message)
        self.reason = reason


class PermissionDeniedError(Exception):
    """Raised when an authenticated principal lacks a required right."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class AdminRequiredError(PermissionDeniedError):
    """Raised when a non-admin identity reaches an administrative operation."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__("Administrator rights required")


__all__ = [
    "AUTH_REQUIRED",
    "INCONSISTENT_TOKENS",
    "INVALID_TOKEN",
    "AdminRequiredError",
    "AuthFailure",
    "AuthenticationError",
    "PermissionDeniedError",
]
