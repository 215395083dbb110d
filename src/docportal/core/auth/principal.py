"""Lightweight identity representation produced by the auth pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AuthenticatedPrincipal:
    """Identity information available to downstream handlers."""

    username: str
    display_name: str
    email: str | None = None
    subject: str | None = None
    groups: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()


__all__ = ["AuthenticatedPrincipal"]
