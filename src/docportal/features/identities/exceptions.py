"""Domain exceptions for identity administration."""

from __future__ import annotations


class IdentityNotFoundError(Exception):
    """Raised when an identity record does not exist."""

    def __init__(self, username: str) -> None:
        super().__init__(f"Identity {username!r} not found")
        self.username = username


class IdentityExistsError(Exception):
    """Raised when creating an identity that is already active."""

    def __init__(self, username: str) -> None:
        super().__init__(f"Identity {username!r} already exists")
        self.username = username


class IdentityValidationError(Exception):
    """Raised when an identity payload carries nothing usable."""


__all__ = ["IdentityExistsError", "IdentityNotFoundError", "IdentityValidationError"]
