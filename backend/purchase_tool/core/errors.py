"""Error Hierarchy — typed, categorized exceptions for every purchase-tool failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - ValidationError never reaches a collaborator: raised before any remote call
    - RemoteError carries the collaborator's structured payload (page/field errors) untouched
    - to_response() produces REST envelope; to_event() produces an error toast for the host UI

Design Decisions:
    - Single hierarchy with PurchaseToolError base: FastAPI global handler and workflow
      boundaries catch all of them in one place (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - DecodeError exists for symmetry but is always recovered locally (see error_decoding)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    EXTERNAL_API = "external_api"
    DECODE = "decode"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    account_id: str | None = None
    item_id: str | None = None
    purchase_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class PurchaseToolError(Exception):
    """Base exception for all purchase-tool errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "account_id": self.context.account_id,
                    "item_id": self.context.item_id,
                    "purchase_id": self.context.purchase_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }

    def to_event(self) -> dict:
        """Convert to an error toast event for the host UI."""
        return {
            "type": "toast",
            "data": {
                "title": "Error",
                "message": self.context.user_message or self.message,
                "variant": "error",
                "code": self.code,
            },
        }


# ─── Local Errors (400-level) ───────────────────────────────────

class ValidationError(PurchaseToolError):
    """Local precondition failed — no collaborator was called."""
    def __init__(
        self, message: str, field: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


class DraftValidationError(ValidationError):
    """Item draft is missing a required field."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(message, field, context)
        self.code = "DRAFT_INVALID"


class CheckoutValidationError(ValidationError):
    """Cart cannot be checked out (no account, empty, or invalid lines)."""
    def __init__(
        self, message: str, item_names: list[str] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(message, None, context)
        self.code = "CHECKOUT_INVALID"
        self.item_names = item_names or []


class ResourceNotFoundError(PurchaseToolError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class SubmissionInProgressError(PurchaseToolError):
    """A second submission arrived while the first is still in flight."""
    def __init__(self, workflow: str, context: ErrorContext | None = None):
        super().__init__(
            f"A {workflow} submission is already in progress",
            "SUBMISSION_IN_PROGRESS", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.workflow = workflow


# ─── Collaborator Errors (500-level) ────────────────────────────

class RemoteError(PurchaseToolError):
    """Collaborator call failed — network, service, or persistence.

    page_errors / field_errors / body_message mirror the structured error body
    a record service returns; raw keeps whatever the collaborator handed us.
    """
    def __init__(
        self,
        message: str,
        *,
        page_errors: list[str] | None = None,
        field_errors: dict[str, list[str]] | None = None,
        body_message: str | None = None,
        raw: Any = None,
        code: str = "REMOTE_ERROR",
        category: ErrorCategory = ErrorCategory.EXTERNAL_API,
        context: ErrorContext | None = None,
        http_status: int = 502,
    ):
        super().__init__(
            message, code, category, ErrorSeverity.ERROR, context, http_status,
        )
        self.page_errors = page_errors or []
        self.field_errors = field_errors or {}
        self.body_message = body_message
        self.raw = raw

    @property
    def body(self) -> dict:
        """Structured error body in the record-service shape."""
        return {
            "pageErrors": [{"message": m} for m in self.page_errors],
            "fieldErrors": {
                name: [{"message": m} for m in messages]
                for name, messages in self.field_errors.items()
            },
            "message": self.body_message,
        }


class ImageLookupError(RemoteError):
    """Image lookup service failed."""
    def __init__(
        self,
        message: str,
        reason: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Image lookup error ({reason}): {message}",
            code="IMAGE_LOOKUP_ERROR", context=ctx, http_status=503,
        )
        self.reason = reason


class PersistenceError(RemoteError):
    """Record store operation failed."""
    def __init__(
        self,
        message: str,
        operation: str,
        *,
        page_errors: list[str] | None = None,
        field_errors: dict[str, list[str]] | None = None,
        http_status: int = 503,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Record {operation} failed: {message}",
            page_errors=page_errors, field_errors=field_errors,
            code="PERSISTENCE_ERROR", context=context, http_status=http_status,
        )
        self.operation = operation


class SubmissionTimeoutError(RemoteError):
    """Collaborator did not answer within the configured timeout."""
    def __init__(
        self, operation: str, timeout_seconds: float,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{operation} timed out after {timeout_seconds}s",
            code="COLLABORATOR_TIMEOUT", category=ErrorCategory.TIMEOUT,
            context=context, http_status=504,
        )
        self.operation = operation


class DecodeError(PurchaseToolError):
    """Collaborator error payload could not be interpreted."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "DECODE_ERROR", ErrorCategory.DECODE,
            ErrorSeverity.WARNING, context, 502,
        )
