"""Service factories and request-scoped dependencies used by API routers.

Routers import per-request constructors from here only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from docportal.core.auth import AuthenticatedPrincipal
from docportal.core.http.dependencies import CurrentPrincipal
from docportal.db import get_db_session
from docportal.features.authorizations.resolver import (
    AuthorizationResolver,
    GrantSelector,
    ResolvedGrant,
)
from docportal.features.authorizations.store import AuthorizationStore
from docportal.infra.storage import StorageGateway, get_storage_gateway
from docportal.settings import Settings

if TYPE_CHECKING:
    from docportal.features.auth.service import LoginService
    from docportal.features.files.service import FilesService
    from docportal.features.health.service import HealthService
    from docportal.features.identities.service import IdentitiesService

GRANT_ID_HEADER = "X-Grant-Id"
GRANT_BUCKET_HEADER = "X-Grant-Bucket"
GRANT_PATH_HEADER = "X-Grant-Path"


def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise RuntimeError("Settings not initialized on application state.")
    return settings


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]


def get_storage(request: Request) -> StorageGateway:
    return get_storage_gateway(request)


StorageDep = Annotated[StorageGateway, Depends(get_storage)]


def get_authorization_store(session: SessionDep, settings: SettingsDep) -> AuthorizationStore:
    return AuthorizationStore(session=session, auto_provision=settings.auto_provision_identities)


AuthorizationStoreDep = Annotated[AuthorizationStore, Depends(get_authorization_store)]


def get_authorization_resolver(
    store: AuthorizationStoreDep,
    settings: SettingsDep,
) -> AuthorizationResolver:
    return AuthorizationResolver(
        store=store,
        default_policy=settings.grant_default_policy,
        scope_match=settings.scope_match,
    )


ResolverDep = Annotated[AuthorizationResolver, Depends(get_authorization_resolver)]


def get_grant_selector(
    grant_id: Annotated[int | None, Header(alias=GRANT_ID_HEADER)] = None,
    grant_bucket: Annotated[str | None, Header(alias=GRANT_BUCKET_HEADER)] = None,
    grant_path: Annotated[str | None, Header(alias=GRANT_PATH_HEADER)] = None,
) -> GrantSelector:
    """Read the optional explicit grant choice from request headers."""

    return GrantSelector(
        grant_id=grant_id,
        bucket=grant_bucket.strip() if grant_bucket and grant_bucket.strip() else None,
        path=grant_path.strip() if grant_path and grant_path.strip() else None,
    )


GrantSelectorDep = Annotated[GrantSelector, Depends(get_grant_selector)]


@dataclass(frozen=True, slots=True)
class RequestAuthorization:
    """Authenticated caller plus what is needed to resolve their grant."""

    principal: AuthenticatedPrincipal
    resolver: AuthorizationResolver
    selector: GrantSelector

    async def resolve(self, folder: str | None = None) -> ResolvedGrant:
        return await self.resolver.resolve_request(
            self.principal.username,
            selector=self.selector,
            folder=folder or None,
        )


def get_request_authorization(
    principal: CurrentPrincipal,
    resolver: ResolverDep,
    selector: GrantSelectorDep,
) -> RequestAuthorization:
    return RequestAuthorization(principal=principal, resolver=resolver, selector=selector)


RequestAuthorizationDep = Annotated[RequestAuthorization, Depends(get_request_authorization)]


async def require_admin_principal(
    principal: CurrentPrincipal,
    resolver: ResolverDep,
) -> AuthenticatedPrincipal:
    await resolver.require_admin(principal.username)
    return principal


AdminPrincipal = Annotated[AuthenticatedPrincipal, Depends(require_admin_principal)]


def get_identities_service(session: SessionDep) -> IdentitiesService:
    from docportal.features.identities.service import IdentitiesService

    return IdentitiesService(session=session)


def get_files_service(settings: SettingsDep, storage: StorageDep, request: Request) -> FilesService:
    from docportal.features.files.service import FilesService

    return FilesService(
        settings=settings,
        storage=storage,
        leases=request.app.state.processing_leases,
    )


def get_login_service(settings: SettingsDep, request: Request) -> LoginService:
    from docportal.features.auth.service import LoginService

    return LoginService(settings=settings, client=request.app.state.http_client)


def get_health_service(settings: SettingsDep, request: Request) -> HealthService:
    from docportal.features.health.service import HealthService

    return HealthService(
        settings=settings,
        database=request.app.state.db,
        storage=get_storage_gateway(request),
    )


__all__ = [
    "AdminPrincipal",
    "AuthorizationStoreDep",
    "GRANT_BUCKET_HEADER",
    "GRANT_ID_HEADER",
    "GRANT_PATH_HEADER",
    "GrantSelectorDep",
    "RequestAuthorization",
    "RequestAuthorizationDep",
    "ResolverDep",
    "SessionDep",
    "SettingsDep",
    "StorageDep",
    "get_app_settings",
    "get_authorization_resolver",
    "get_authorization_store",
    "get_files_service",
    "get_grant_selector",
    "get_health_service",
    "get_identities_service",
    "get_login_service",
    "get_request_authorization",
    "require_admin_principal",
]
