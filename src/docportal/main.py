"""Document portal FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import cast

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .api.router import create_api_router
from .app.lifecycles import create_application_lifespan
from .common.exceptions import (
    api_error_handler,
    http_exception_handler,
    request_validation_exception_handler,
    unhandled_exception_handler,
)
from .common.logging import setup_logging
from .common.middleware import register_middleware
from .common.problem_details import ApiError
from .core.http.errors import (
    register_auth_exception_handlers,
    register_backend_exception_handlers,
)
from .infra.storage import StorageGateway
from .settings import Settings, get_settings

API_PREFIX = "/api"
type HttpExceptionHandler = Callable[[Request, Exception], Response | Awaitable[Response]]
logger = logging.getLogger(__name__)


def _as_http_exception_handler(handler: Callable[..., Response]) -> HttpExceptionHandler:
    return cast(HttpExceptionHandler, handler)


def create_app(
    settings: Settings | None = None,
    *,
    storage: StorageGateway | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the document portal FastAPI application."""
    # Settings + logging first so everything else uses the configured root logger.
    settings = settings or get_settings()
    setup_logging(settings)

    lifespan = create_application_lifespan(
        settings=settings,
        storage=storage,
        http_transport=http_transport,
    )

    docs_enabled = settings.api_docs_enabled
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url=f"{API_PREFIX}/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url=f"{API_PREFIX}/openapi.json" if docs_enabled else None,
        debug=False,
        lifespan=lifespan,
    )

    # Global exception handlers.
    app.add_exception_handler(
        RequestValidationError, _as_http_exception_handler(request_validation_exception_handler)
    )
    app.add_exception_handler(HTTPException, _as_http_exception_handler(http_exception_handler))
    app.add_exception_handler(
        StarletteHTTPException, _as_http_exception_handler(http_exception_handler)
    )
    app.add_exception_handler(ApiError, _as_http_exception_handler(api_error_handler))
    app.add_exception_handler(Exception, _as_http_exception_handler(unhandled_exception_handler))
    register_auth_exception_handlers(app)
    register_backend_exception_handlers(app)

    register_middleware(app, settings=settings)
    app.include_router(create_api_router(), prefix=API_PREFIX)
    if docs_enabled:
        logger.info("api.docs.enabled", extra={"openapi_url": app.openapi_url})

    return app


__all__ = [
    "API_PREFIX",
    "create_app",
]
