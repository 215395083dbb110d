from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, cast

import pytest

from docportal.core.auth.errors import AdminRequiredError
from docportal.features.authorizations.exceptions import (
    GrantNotFoundError,
    GrantSelectionRequiredError,
    NotAuthorizedError,
    ScopeDeniedError,
)
from docportal.features.authorizations.resolver import AuthorizationResolver, GrantSelector
from docportal.models import Grant, Identity

pytestmark = pytest.mark.asyncio

BUCKET = "docs-test"
CARTAS = "Recepcion/Muestreo/Cartas"
FACTURAS = "Recepcion/Muestreo/Facturas"
_EPOCH = datetime(2024, 1, 1, tzinfo=UTC)


@dataclass
class _FakeStore:
    """Duck-typed store holding grants newest first."""

    identities: dict[str, Identity] = field(default_factory=dict)
    grants: list[Grant] = field(default_factory=list)

    def add(self, username: str, path: str, *, bucket: str = BUCKET, active: bool = True) -> Grant:
        identity = self.identities.setdefault(
            username,
            Identity(username=username, is_admin=False, is_active=True),
        )
        grant = Grant(
            id=len(self.grants) + 1,
            owner_username=username,
            bucket=bucket,
            document_group_path=path,
            is_active=active,
            created_at=_EPOCH + timedelta(minutes=len(self.grants)),
        )
        grant.owner = identity
        self.grants.append(grant)
        return grant

    async def get_identity(self, username: str) -> Identity | None:
        return self.identities.get(username)

    async def list_active_grants(self, username: str) -> list[Grant]:
        owned = [g for g in self.grants if g.owner_username == username and g.is_active]
        return sorted(owned, key=lambda g: (g.created_at, g.id), reverse=True)


def _resolver(store: _FakeStore, **kwargs: Any) -> AuthorizationResolver:
    return AuthorizationResolver(store=cast(Any, store), **kwargs)


async def test_identity_without_grants_is_not_authorized() -> None:
    store = _FakeStore()
    store.identities["usuario3"] = Identity(username="usuario3", is_admin=False, is_active=True)

    with pytest.raises(NotAuthorizedError):
        await _resolver(store).resolve("usuario3")


async def test_inactive_identity_has_no_grants() -> None:
    store = _FakeStore()
    store.add("usuario1", CARTAS)
    store.identities["usuario1"].is_active = False

    assert await _resolver(store).active_grants("usuario1") == []
    with pytest.raises(NotAuthorizedError):
        await _resolver(store).resolve("usuario1")


async def test_single_grant_resolves_without_selector() -> None:
    store = _FakeStore()
    grant = store.add("usuario2", CARTAS)

    resolved = await _resolver(store).resolve_request("usuario2")

    assert resolved.grant is grant
    assert resolved.via == "single"


async def test_most_recent_grant_is_the_default() -> None:
    store = _FakeStore()
    store.add("usuario1", CARTAS)
    newest = store.add("usuario1", FACTURAS)

    resolved = await _resolver(store).resolve_request("usuario1")

    assert resolved.grant is newest
    assert resolved.via == "most_recent"
    assert len(resolved.active_grants) == 2


async def test_require_selection_policy_refuses_to_guess() -> None:
    store = _FakeStore()
    store.add("usuario1", CARTAS)
    store.add("usuario1", FACTURAS)

    with pytest.raises(GrantSelectionRequiredError):
        await _resolver(store, default_policy="require_selection").resolve("usuario1")


async def test_selector_picks_matching_grant() -> None:
    store = _FakeStore()
    cartas = store.add("usuario1", CARTAS)
    store.add("usuario1", FACTURAS)

    grant = await _resolver(store).resolve(
        "usuario1",
        GrantSelector(bucket=BUCKET, path=CARTAS),
    )

    assert grant is cartas


async def test_selector_cannot_reach_another_users_grant() -> None:
    store = _FakeStore()
    store.add("usuario1", CARTAS)
    foreign = store.add("usuario2", FACTURAS)

    with pytest.raises(GrantNotFoundError):
        await _resolver(store).resolve("usuario1", GrantSelector(grant_id=foreign.id))


async def test_selector_ignores_inactive_grants() -> None:
    store = _FakeStore()
    store.add("usuario1", CARTAS)
    inactive = store.add("usuario1", FACTURAS, active=False)

    with pytest.raises(GrantNotFoundError):
        await _resolver(store).resolve("usuario1", GrantSelector(grant_id=inactive.id))


async def test_folder_picks_the_grant_that_covers_it() -> None:
    store = _FakeStore()
    cartas = store.add("usuario1", CARTAS)
    store.add("usuario1", FACTURAS)

    grant = await _resolver(store).resolve_for_folder("usuario1", f"{CARTAS}/2024")

    assert grant is cartas


async def test_folder_outside_every_grant_is_denied() -> None:
    store = _FakeStore()
    store.add("usuario2", CARTAS)

    with pytest.raises(ScopeDeniedError):
        await _resolver(store).resolve_for_folder("usuario2", FACTURAS)


async def test_segment_mode_rejects_sibling_folder() -> None:
    store = _FakeStore()
    store.add("usuario2", CARTAS)

    assert await _resolver(store).resolve_for_folder("usuario2", f"{CARTAS}X")
    with pytest.raises(ScopeDeniedError):
        await _resolver(store, scope_match="segment").resolve_for_folder("usuario2", f"{CARTAS}X")


async def test_selector_and_folder_must_agree() -> None:
    store = _FakeStore()
    cartas = store.add("usuario1", CARTAS)
    store.add("usuario1", FACTURAS)

    with pytest.raises(ScopeDeniedError):
        await _resolver(store).resolve_request(
            "usuario1",
            selector=GrantSelector(grant_id=cartas.id),
            folder=FACTURAS,
        )


async def test_require_admin() -> None:
    store = _FakeStore()
    store.identities["root"] = Identity(username="root", is_admin=True, is_active=True)
    store.identities["usuario1"] = Identity(username="usuario1", is_admin=False, is_active=True)
    resolver = _resolver(store)

    await resolver.require_admin("root")
    with pytest.raises(AdminRequiredError):
        await resolver.require_admin("usuario1")
    with pytest.raises(AdminRequiredError):
        await resolver.require_admin("nobody")
