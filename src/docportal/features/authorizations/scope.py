"""Path-scope checks against a resolved grant.

Two strategies coexist. Folder requests are checked by path: ``prefix`` mode
is a plain ``str.startswith`` against the grant's document group path, so a
grant on ``Recepcion/Muestreo/Cartas`` also admits the sibling
``Recepcion/Muestreo/CartasX``; ``segment`` mode admits only the folder itself
and its descendants. Requests without a folder fall back to the filename
typology check.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from docportal.settings import ScopeMatch

from .exceptions import ScopeDeniedError
from .typologies import Typology, classify_filename, group_accepts


class ScopedGrant(Protocol):
    document_group_path: str


@dataclass(frozen=True, slots=True)
class ScopeDecision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = ScopeDecision(allowed=True)


def path_in_scope(group_path: str, candidate: str, *, mode: ScopeMatch = "prefix") -> bool:
    if mode == "segment":
        base = group_path.rstrip("/")
        if not base:
            return True
        return candidate == base or candidate.startswith(f"{base}/")
    return candidate.startswith(group_path)


def check_scope(
    grant: ScopedGrant,
    candidate_path: str,
    *,
    mode: ScopeMatch = "prefix",
) -> ScopeDecision:
    if path_in_scope(grant.document_group_path, candidate_path, mode=mode):
        return ALLOWED
    return ScopeDecision(
        allowed=False,
        reason=f"No permission for folder: {candidate_path}",
    )


def enforce_scope(
    grant: ScopedGrant,
    candidate_path: str,
    *,
    mode: ScopeMatch = "prefix",
) -> None:
    decision = check_scope(grant, candidate_path, mode=mode)
    if not decision.allowed:
        raise ScopeDeniedError(decision.reason or "Forbidden")


def check_typology(grant: ScopedGrant, filename: str) -> tuple[ScopeDecision, Typology]:
    """Classify ``filename`` and test it against the grant's group keyword."""

    typology = classify_filename(filename)
    if group_accepts(grant.document_group_path, typology):
        return ALLOWED, typology
    return (
        ScopeDecision(
            allowed=False,
            reason=(
                f"File type {typology.code} ({typology.description}) is not covered "
                f"by document group {grant.document_group_path}"
            ),
        ),
        typology,
    )


__all__ = [
    "ALLOWED",
    "ScopeDecision",
    "ScopedGrant",
    "check_scope",
    "check_typology",
    "enforce_scope",
    "path_in_scope",
]
