"""Centralized FastAPI exception handlers with structured logging."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from docportal.common.logging import log_context
from docportal.common.problem_details import (
    ApiError,
    ProblemDetailsErrorItem,
    build_problem_details,
    coerce_detail,
    error_items_from_pydantic,
    resolve_error_definition,
)

_UNHANDLED_LOGGER = logging.getLogger("docportal.errors")
_HTTP_LOGGER = logging.getLogger("docportal.http")
_PROBLEM_MEDIA_TYPE = "application/problem+json"


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "correlation_id", None)


def _problem_response(
    *,
    request: Request,
    status_code: int,
    detail: str | None,
    errors: list[ProblemDetailsErrorItem] | None,
    error_type: str | None = None,
    title: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    problem = build_problem_details(
        status_code=status_code,
        instance=str(request.url.path),
        request_id=_request_id(request),
        detail=detail,
        errors=errors,
        error_type=error_type,
        title=title,
    )
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(by_alias=True, exclude_none=True),
        media_type=_PROBLEM_MEDIA_TYPE,
        headers=headers,
    )


def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected exceptions.

    Registered as the ``Exception`` handler. Any unhandled error results in an
    opaque HTTP 500 body and a structured ERROR log including a stack trace.
    """
    _UNHANDLED_LOGGER.error(
        "unhandled_exception",
        exc_info=exc,
        extra=log_context(
            path=str(request.url.path),
            method=request.method,
            exception_type=type(exc).__name__,
        ),
    )

    return _problem_response(
        request=request,
        status_code=500,
        detail="Internal server error",
        errors=None,
        error_type=resolve_error_definition(500).type,
    )


def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI/Starlette HTTPException instances.

    4xx responses are returned without logging. 5xx responses are logged at
    ERROR level.
    """
    if exc.status_code >= 500:
        _HTTP_LOGGER.error(
            "http_exception",
            extra=log_context(
                path=str(request.url.path),
                method=request.method,
                status_code=exc.status_code,
                detail=coerce_detail(exc.detail),
            ),
        )

    detail_text = coerce_detail(exc.detail)
    if exc.status_code == 500:
        detail_text = "Internal server error"

    return _problem_response(
        request=request,
        status_code=exc.status_code,
        detail=detail_text,
        errors=None,
        headers=getattr(exc, "headers", None),
    )


def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    errors = error_items_from_pydantic(exc.errors())
    return _problem_response(
        request=request,
        status_code=422,
        detail="Invalid request",
        errors=errors,
        error_type=resolve_error_definition(422).type,
    )


def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        _HTTP_LOGGER.error(
            "api_error",
            extra=log_context(
                path=str(request.url.path),
                method=request.method,
                status_code=exc.status_code,
                error_type=exc.error_type,
            ),
        )
    return _problem_response(
        request=request,
        status_code=exc.status_code,
        detail=exc.detail,
        errors=exc.errors,
        error_type=exc.error_type,
        title=exc.title,
        headers=exc.headers,
    )


__all__ = [
    "api_error_handler",
    "http_exception_handler",
    "request_validation_exception_handler",
    "unhandled_exception_handler",
]
