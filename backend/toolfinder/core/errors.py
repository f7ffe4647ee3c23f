"""Error Hierarchy — typed, categorized exceptions for all Toolfinder failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Input and conflict errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with ToolfinderError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - DuplicateToolError carries the existing row: a duplicate is a normal outcome,
      callers decorate their reply with it
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
    AUTHENTICATION = "authentication"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    CONFIGURATION = "configuration"
    EXTERNAL_API = "external_api"
    DISPATCH = "dispatch"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    job_id: str | None = None
    stage: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class ToolfinderError(Exception):
    """Base exception for all Toolfinder errors."""

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
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "job_id": self.context.job_id,
                    "stage": self.context.stage,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Input / Domain Errors (400-level) ──────────────────────────

class InputRejectedError(ToolfinderError):
    """User input failed validation (empty description, malformed URL)."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


class SignatureVerificationError(ToolfinderError):
    """Inbound command signature missing, stale, or wrong."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid request signature: {reason}",
            "INVALID_SIGNATURE", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )
        self.reason = reason


class DuplicateToolError(ToolfinderError):
    """A tool with this URL is already cataloged."""
    def __init__(
        self, url: str, existing: dict | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            "Tool with this URL already exists",
            "DUPLICATE_TOOL", ErrorCategory.CONFLICT,
            ErrorSeverity.INFO, context, 409,
        )
        self.url = url
        self.existing = existing

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["tool"] = self.existing
        return response


class ResourceNotFoundError(ToolfinderError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(ToolfinderError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class SchemaMissingError(ToolfinderError):
    """Catalog tables are absent — migrations were never applied."""
    def __init__(self, table: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database tables not found ({table}). Run `alembic upgrade head` first.",
            "SCHEMA_MISSING", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.table = table


class ConfigurationError(ToolfinderError):
    """Required setting missing at runtime."""
    def __init__(self, setting: str, context: ErrorContext | None = None):
        super().__init__(
            f"Server configuration error: {setting} is not set",
            "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.setting = setting


class GenerativeBackendError(ToolfinderError):
    """Generative text backend call failed."""
    def __init__(
        self,
        message: str,
        api_error_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Generative backend error ({api_error_type}): {message}",
            "GENERATIVE_BACKEND_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.api_error_type = api_error_type


class PageFetchError(ToolfinderError):
    """Candidate tool page could not be fetched."""
    def __init__(self, url: str, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Failed to fetch {url}: {reason}",
            "PAGE_FETCH_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, context, 400,
        )
        self.url = url


class DispatchError(ToolfinderError):
    """Deferred dispatch rejected the job."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Failed to enqueue job: {message}",
            "DISPATCH_ERROR", ErrorCategory.DISPATCH,
            ErrorSeverity.CRITICAL, context, 503,
        )
