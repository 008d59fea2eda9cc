"""RFC 7807 Problem Details exception handlers.

Domain errors raised by the deletion engine become
``application/problem+json`` responses:

=============================  ======
NotFoundError                  404
ValidationError                422
ConflictError (and subclasses) 409
DeletionBlockedError           409
StoreQueryError                503
DomainError (fallback)         400
RequestValidationError         422
Exception                      500
=============================  ======
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from gmao.foundation.domain.exceptions import (
    ConflictError,
    DeletionBlockedError,
    DomainError,
    NotFoundError,
    StoreQueryError,
    ValidationError,
)
from gmao.infra.fastapi.middleware.request_id import get_request_id

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


class ProblemDetail(BaseModel):
    """RFC 7807 problem body with ``error_code``/``context`` extensions."""

    type: str = Field(..., examples=["/errors/not-found"])
    title: str
    status: int = Field(..., ge=400, le=599)
    detail: str
    instance: str | None = None
    error_code: str | None = Field(default=None, examples=["DELETION_BLOCKED"])
    context: dict[str, Any] | None = None
    correlation_id: str | None = None


# Store errors may carry driver messages with DSNs
_SENSITIVE_PATTERNS = [
    (re.compile(r"(postgresql|sqlite)(\+\w+)?://[^\s'\"]*"), r"\1://[REDACTED]"),
    (re.compile(r"password\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE), "password=[REDACTED]"),
]
_SENSITIVE_KEYS = frozenset({"password", "secret", "token", "dsn", "credential"})


def _redact(text: str) -> str:
    for pattern, replacement in _SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, str):
        return _redact(value)
    if isinstance(value, dict):
        return _sanitize_context(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_sanitize_value(item) for item in value]
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def _sanitize_context(context: dict[str, Any] | None) -> dict[str, Any] | None:
    if not context:
        return None
    sanitized = {
        key: _sanitize_value(value)
        for key, value in context.items()
        if key.lower() not in _SENSITIVE_KEYS
    }
    return sanitized or None


def _problem(
    request: Request,
    exc: DomainError,
    *,
    status: int,
    slug: str,
    title: str,
) -> JSONResponse:
    problem = ProblemDetail(
        type=f"/errors/{slug}",
        title=title,
        status=status,
        detail=_redact(str(exc)),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
        correlation_id=(get_request_id() or "unknown") if status >= 500 else None,
    )
    return JSONResponse(
        status_code=status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _problem(request, exc, status=404, slug="not-found", title="Resource Not Found")


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _problem(request, exc, status=422, slug="validation-error", title="Validation Error")


async def conflict_error_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return _problem(request, exc, status=409, slug="conflict", title="Conflict")


async def deletion_blocked_handler(request: Request, exc: DeletionBlockedError) -> JSONResponse:
    """The plan forbids deletion; the reason is the plan's own text."""
    return _problem(request, exc, status=409, slug="deletion-blocked", title="Deletion Blocked")


async def store_error_handler(request: Request, exc: StoreQueryError) -> JSONResponse:
    """A strict store call failed outside the degradable analysis lookups."""
    logger.error(
        "store_unavailable",
        extra={"table": exc.table, "operation": exc.operation, "path": str(request.url.path)},
    )
    return _problem(request, exc, status=503, slug="store-unavailable", title="Store Unavailable")


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return _problem(request, exc, status=400, slug="domain-error", title="Bad Request")


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    errors = [
        {
            "loc": list(error.get("loc", [])),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    problem = ProblemDetail(
        type="/errors/request-validation-error",
        title="Request Validation Error",
        status=422,
        detail="Request validation failed",
        instance=str(request.url.path),
        error_code="REQUEST_VALIDATION_ERROR",
        context={"errors": errors},
    )
    return JSONResponse(
        status_code=422,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure and answer with a sanitized 500."""
    correlation_id = get_request_id() or "unknown"
    logger.exception(
        "unhandled_exception",
        extra={
            "correlation_id": correlation_id,
            "path": str(request.url.path),
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
    )
    problem = ProblemDetail(
        type="/errors/internal-error",
        title="Internal Server Error",
        status=500,
        detail="An internal error occurred. Please contact support with the correlation ID.",
        instance=str(request.url.path),
        error_code="INTERNAL_ERROR",
        correlation_id=correlation_id,
    )
    return JSONResponse(
        status_code=500,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the handlers, most specific exception first."""
    # Starlette types handlers as taking Exception
    app.add_exception_handler(NotFoundError, not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ConflictError, conflict_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DeletionBlockedError, deletion_blocked_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StoreQueryError, store_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DomainError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
