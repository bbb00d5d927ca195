"""Error Handlers — map errors that escape a purchase-session route to JSON envelopes.

Invariants:
    - Local failures (validation, conflict, not found) log at WARNING; collaborator
      failures (RemoteError and subclasses) log at ERROR with the decoded message
    - RemoteError envelopes carry the record-service body (pageErrors/fieldErrors)
      and the decoded user-facing message, so hosts show the same text as the toast
    - retry_after_ms on the error context becomes a Retry-After header (whole seconds)
    - Starlette HTTPException (unknown path, wrong method) uses the same envelope
    - Exception (catch-all) → 500 INTERNAL_ERROR, never leaks internal details

Design Decisions:
    - Workflow failures inside POST /create and /checkout never get here: they are
      200 + status "failed". Only route-level errors (unknown session, bad draft
      field, manager-only reload) and unexpected escapes reach these handlers
"""

import logging
import math

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from purchase_tool.core.error_decoding import decode_error_message
from purchase_tool.core.errors import (
    ErrorCategory, ErrorSeverity, PurchaseToolError, RemoteError,
)

logger = logging.getLogger(__name__)

_WARNING_CATEGORIES = {
    ErrorCategory.VALIDATION,
    ErrorCategory.CONFLICT,
    ErrorCategory.RESOURCE_NOT_FOUND,
    ErrorCategory.DECODE,
}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_domain_error_handler(app)
    _register_http_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def build_error_content(exc: PurchaseToolError) -> dict:
    """Envelope for a domain error; remote errors add the collaborator body."""
    content = exc.to_response()
    if isinstance(exc, RemoteError):
        content["error"]["user_message"] = decode_error_message(exc)
        content["error"]["body"] = exc.body
    return content


def retry_after_header(exc: PurchaseToolError) -> dict[str, str]:
    retry_ms = exc.context.retry_after_ms
    if not retry_ms or retry_ms <= 0:
        return {}
    return {"Retry-After": str(math.ceil(retry_ms / 1000))}


def _register_domain_error_handler(app: FastAPI) -> None:

    @app.exception_handler(PurchaseToolError)
    async def purchase_tool_error_handler(request: Request, exc: PurchaseToolError):
        extra = {
            "error_code": exc.code,
            "path": request.url.path,
            "account_id": exc.context.account_id,
        }
        if exc.category in _WARNING_CATEGORIES:
            logger.warning(f"{exc.code} on {request.url.path}: {exc.message}", extra=extra)
        else:
            logger.error(
                f"{exc.code} on {request.url.path}: {decode_error_message(exc)}",
                extra=extra,
            )
        return JSONResponse(
            status_code=exc.http_status,
            content=build_error_content(exc),
            headers=retry_after_header(exc),
        )


def _register_http_error_handler(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        """Framework-level errors (unknown path, wrong method) in the same envelope."""
        content = {
            "error": {
                "code": "HTTP_ERROR",
                "message": str(exc.detail),
                "category": "http",
                "severity": ErrorSeverity.WARNING.value,
            },
        }
        return JSONResponse(
            status_code=exc.status_code, content=content,
            headers=getattr(exc, "headers", None),
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.warning(
            f"Invalid request body on {request.url.path}",
            extra={"path": request.url.path, "error_code": "VALIDATION_ERROR"},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled {type(exc).__name__} on {request.url.path}",
            extra={"path": request.url.path, "error_code": "INTERNAL_ERROR"},
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": ErrorCategory.INTERNAL.value,
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    """Field errors keyed the way the draft form names its inputs."""
    field_errors: dict[str, list[str]] = {}
    for e in exc.errors():
        loc = [str(part) for part in e["loc"] if part != "body"]
        field_errors.setdefault(".".join(loc) or "body", []).append(e["msg"])
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": ErrorCategory.VALIDATION.value,
            "severity": ErrorSeverity.WARNING.value,
            "field_errors": field_errors,
        },
    }
