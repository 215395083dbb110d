"""Per-request grant resolution.

The grant governing a request is recomputed on every call from the caller's
own active grants and the selector the request carries. Nothing is cached or
shared between requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from docportal.common.logging import log_context
from docportal.core.auth.errors import AdminRequiredError
from docportal.models import Grant
from docportal.settings import GrantDefaultPolicy, ScopeMatch

from .exceptions import (
    GrantNotFoundError,
    GrantSelectionRequiredError,
    NotAuthorizedError,
    ScopeDeniedError,
)
from .scope import enforce_scope, path_in_scope
from .store import AuthorizationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GrantSelector:
    """Explicit grant choice: a grant id, or a (bucket, path) pair."""

    grant_id: int | None = None
    bucket: str | None = None
    path: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.grant_id is None and self.bucket is None and self.path is None

    def matches(self, grant: Grant) -> bool:
        if self.grant_id is not None and grant.id != self.grant_id:
            return False
        if self.bucket is not None and grant.bucket != self.bucket:
            return False
        if self.path is not None and grant.document_group_path != self.path:
            return False
        return True


@dataclass(frozen=True, slots=True)
class ResolvedGrant:
    grant: Grant
    active_grants: tuple[Grant, ...]
    via: str


class AuthorizationResolver:
    """Pick the one grant that governs a request."""

    def __init__(
        self,
        *,
        store: AuthorizationStore,
        default_policy: GrantDefaultPolicy = "most_recent",
        scope_match: ScopeMatch = "prefix",
    ) -> None:
        self._store = store
        self._default_policy = default_policy
        self._scope_match = scope_match

    @property
    def scope_match(self) -> ScopeMatch:
        return self._scope_match

    async def active_grants(self, username: str) -> list[Grant]:
        identity = await self._store.get_identity(username)
        if identity is None or not identity.is_active:
            return []
        return await self._store.list_active_grants(username)

    async def resolve(self, username: str, selector: GrantSelector | None = None) -> Grant:
        resolved = await self.resolve_request(username, selector=selector)
        return resolved.grant

    async def resolve_for_folder(self, username: str, folder: str) -> Grant:
        resolved = await self.resolve_request(username, folder=folder)
        return resolved.grant

    async def resolve_request(
        self,
        username: str,
        *,
        selector: GrantSelector | None = None,
        folder: str | None = None,
    ) -> ResolvedGrant:
        """Resolve the request's grant from a selector, a folder, or the default policy.

        With a selector the folder, when given, must also fall inside the
        selected grant.
        """

        grants = await self.active_grants(username)
        if not grants:
            logger.info("grants.resolve.none", extra=log_context(username=username))
            raise NotAuthorizedError(username)

        if selector is not None and not selector.is_empty:
            grant = next((g for g in grants if selector.matches(g)), None)
            if grant is None:
                logger.info(
                    "grants.resolve.selector_miss",
                    extra=log_context(
                        username=username,
                        grant_id=selector.grant_id,
                        bucket=selector.bucket,
                    ),
                )
                raise GrantNotFoundError()
            if folder:
                enforce_scope(grant, folder, mode=self._scope_match)
            return self._resolved(username, grant, grants, via="selector")

        if folder:
            grant = next(
                (
                    g
                    for g in grants
                    if path_in_scope(g.document_group_path, folder, mode=self._scope_match)
                ),
                None,
            )
            if grant is None:
                raise ScopeDeniedError(f"No permission for folder: {folder}")
            return self._resolved(username, grant, grants, via="folder")

        if len(grants) == 1:
            return self._resolved(username, grants[0], grants, via="single")
        if self._default_policy == "require_selection":
            raise GrantSelectionRequiredError()
        return self._resolved(username, grants[0], grants, via="most_recent")

    def _resolved(
        self,
        username: str,
        grant: Grant,
        grants: list[Grant],
        *,
        via: str,
    ) -> ResolvedGrant:
        logger.debug(
            "grants.resolve.success",
            extra=log_context(
                username=username,
                bucket=grant.bucket,
                grant_id=grant.id,
                via=via,
                total_grants=len(grants),
            ),
        )
        return ResolvedGrant(grant=grant, active_grants=tuple(grants), via=via)

    async def is_admin(self, username: str) -> bool:
        identity = await self._store.get_identity(username)
        return bool(identity is not None and identity.is_active and identity.is_admin)

    async def require_admin(self, username: str) -> None:
        if not await self.is_admin(username):
            logger.info("admin.denied", extra=log_context(username=username))
            raise AdminRequiredError(username)


__all__ = ["AuthorizationResolver", "GrantSelector", "ResolvedGrant"]
