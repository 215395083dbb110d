"""Exception handlers that translate auth and backend errors to HTTP responses."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import cast

from fastapi import FastAPI, Request, status
from starlette.responses import Response

from docportal.common.exceptions import api_error_handler
from docportal.common.logging import log_context
from docportal.common.problem_details import ApiError
from docportal.features.authorizations.exceptions import StoreUnavailableError
from docportal.infra.storage.base import (
    ObjectNotFoundError,
    StorageError,
    StorageTimeoutError,
)

from ..auth.errors import AuthenticationError, PermissionDeniedError

type HttpExceptionHandler = Callable[[Request, Exception], Response | Awaitable[Response]]

logger = logging.getLogger(__name__)


def _handle_authentication_error(request: Request, exc: AuthenticationError) -> Response:
    """Translate auth failures into HTTP 401 responses."""

    logger.info(
        "auth.rejected",
        extra=log_context(path=request.url.path, reason=exc.reason),
    )
    error = ApiError(
        error_type="unauthorized",
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=str(exc) or "Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )
    return api_error_handler(request, error)


def _handle_permission_error(request: Request, exc: PermissionDeniedError) -> Response:
    """Translate permission denials into HTTP 403 responses."""

    logger.info(
        "auth.forbidden",
        extra=log_context(path=request.url.path, error=type(exc).__name__),
    )
    error = ApiError(
        error_type="forbidden",
        status_code=status.HTTP_403_FORBIDDEN,
        detail=str(exc) or "Forbidden",
    )
    return api_error_handler(request, error)


def _handle_store_unavailable(request: Request, exc: StoreUnavailableError) -> Response:
    return api_error_handler(
        request,
        ApiError.from_definition("internal_error", "Authorization store unavailable"),
    )


def _handle_object_not_found(request: Request, exc: ObjectNotFoundError) -> Response:
    logger.info(
        "storage.not_found",
        extra=log_context(path=request.url.path, bucket=exc.bucket, key=exc.key),
    )
    return api_error_handler(
        request,
        ApiError.from_definition("not_found", f"Object not found: {exc.key}"),
    )


def _handle_storage_timeout(request: Request, exc: StorageTimeoutError) -> Response:
    logger.warning(
        "storage.timeout",
        extra=log_context(path=request.url.path, operation=exc.operation),
    )
    return api_error_handler(
        request,
        ApiError.from_definition("service_unavailable", "Storage backend timed out"),
    )


def _handle_storage_error(request: Request, exc: StorageError) -> Response:
    logger.error(
        "storage.error",
        extra=log_context(path=request.url.path, error=type(exc).__name__),
        exc_info=exc,
    )
    return api_error_handler(
        request,
        ApiError.from_definition("internal_error", "Storage backend error"),
    )


def register_auth_exception_handlers(app: FastAPI) -> None:
    """Attach auth handlers to the FastAPI app."""

    app.add_exception_handler(
        AuthenticationError,
        cast(HttpExceptionHandler, _handle_authentication_error),
    )
    app.add_exception_handler(
        PermissionDeniedError,
        cast(HttpExceptionHandler, _handle_permission_error),
    )


def register_backend_exception_handlers(app: FastAPI) -> None:
    """Attach handlers for authorization-store and object-storage failures.

    Starlette resolves handlers along the exception MRO, so the storage
    subclasses win over the generic ``StorageError`` handler.
    """

    app.add_exception_handler(
        StoreUnavailableError,
        cast(HttpExceptionHandler, _handle_store_unavailable),
    )
    app.add_exception_handler(
        ObjectNotFoundError,
        cast(HttpExceptionHandler, _handle_object_not_found),
    )
    app.add_exception_handler(
        StorageTimeoutError,
        cast(HttpExceptionHandler, _handle_storage_timeout),
    )
    app.add_exception_handler(
        StorageError,
        cast(HttpExceptionHandler, _handle_storage_error),
    )


__all__ = ["register_auth_exception_handlers", "register_backend_exception_handlers"]
