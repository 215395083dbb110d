"""Aggregate feature routers for the ``/api`` surface."""

from __future__ import annotations

from fastapi import APIRouter

from docportal.features.auth.router import router as auth_router
from docportal.features.authorizations.router import router as authorizations_router
from docportal.features.files.router import router as files_router
from docportal.features.health.router import router as health_router
from docportal.features.identities.router import router as identities_router


def create_api_router() -> APIRouter:
    """Return the API router with every feature mounted."""

    api_router = APIRouter()
    api_router.include_router(health_router)
    api_router.include_router(auth_router)
    api_router.include_router(authorizations_router)
    api_router.include_router(identities_router)
    api_router.include_router(files_router)
    return api_router


__all__ = ["create_api_router"]
