"""Storage gateway factory + FastAPI lifecycle helpers."""

from __future__ import annotations

from fastapi import FastAPI, Request

from docportal.settings import Settings

from .base import StorageGateway
from .memory import InMemoryStorage
from .s3 import S3Config, S3Storage


def build_storage_gateway(settings: Settings) -> StorageGateway:
    if settings.storage_backend == "memory":
        return InMemoryStorage()
    config = S3Config(
        region=settings.aws_region,
        endpoint_url=settings.s3_endpoint_url,
        request_timeout_seconds=settings.storage_request_timeout_seconds,
        connect_timeout_seconds=settings.storage_connect_timeout_seconds,
    )
    return S3Storage(config)


def _resolve_app(app_or_request: FastAPI | Request) -> FastAPI:
    if isinstance(app_or_request, FastAPI):
        return app_or_request
    return app_or_request.app


def init_storage(
    app: FastAPI,
    settings: Settings,
    *,
    gateway: StorageGateway | None = None,
) -> StorageGateway:
    resolved = gateway or build_storage_gateway(settings)
    app.state.storage = resolved
    return resolved


def shutdown_storage(app: FastAPI) -> None:
    gateway: StorageGateway | None = getattr(app.state, "storage", None)
    if gateway is not None:
        gateway.close()
    app.state.storage = None


def get_storage_gateway(app_or_request: FastAPI | Request) -> StorageGateway:
    app = _resolve_app(app_or_request)
    gateway = getattr(app.state, "storage", None)
    if gateway is None:
        raise RuntimeError("Storage not initialized. Call init_storage(app, ...) at startup.")
    return gateway


__all__ = [
    "build_storage_gateway",
    "get_storage_gateway",
    "init_storage",
    "shutdown_storage",
]
