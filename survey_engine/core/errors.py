"""Error Hierarchy — typed, categorized exceptions for every lifecycle outcome.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Each lifecycle rejection has its own class and code; callers branch on code,
      never on message text
    - Domain errors (4xx) are expected outcomes; infrastructure errors (5xx) are not
    - to_response() produces the REST envelope; no internal details leak

Design Decisions:
    - Single hierarchy with SurveyEngineError base: one FastAPI handler catches all
    - ErrorContext as dataclass: observability fields without coupling to logging
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from survey_engine.core.domain_types import ExpiryRejection


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
    AUTHORIZATION = "authorization"
    STATE_CONFLICT = "state_conflict"
    RESOURCE_NOT_FOUND = "resource_not_found"
    PERSISTENCE_CONFLICT = "persistence_conflict"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    survey_id: str | None = None
    response_id: str | None = None
    actor_id: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class SurveyEngineError(Exception):
    """Base exception for all survey engine errors."""

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

    @property
    def retryable(self) -> bool:
        return self.category in (
            ErrorCategory.PERSISTENCE_CONFLICT, ErrorCategory.EXTERNAL_API,
        )

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "retryable": self.retryable,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "survey_id": self.context.survey_id,
                    "response_id": self.context.response_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ResourceNotFoundError(SurveyEngineError):
    """Survey or response does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )
        self.resource_type = resource_type


class AuthenticationError(SurveyEngineError):
    """No verified identity on a route that needs one."""
    def __init__(self, message: str = "Not authenticated", context: ErrorContext | None = None):
        super().__init__(
            message, "NOT_AUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class UnauthorizedError(SurveyEngineError):
    """Actor lacks the role the operation requires."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Not authorized to {operation}",
            "UNAUTHORIZED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )
        self.operation = operation


class SurveyClosedError(SurveyEngineError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Survey is closed and no longer accepting responses.",
            "SURVEY_CLOSED", ErrorCategory.STATE_CONFLICT,
            ErrorSeverity.WARNING, context, 400,
        )


class SurveyExpiredError(SurveyEngineError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Survey has expired and no longer accepting responses.",
            "SURVEY_EXPIRED", ErrorCategory.STATE_CONFLICT,
            ErrorSeverity.WARNING, context, 400,
        )


class QuotaExceededError(SurveyEngineError):
    """Distinct-respondent quota reached and the actor is a new respondent."""
    def __init__(self, quota: int, context: ErrorContext | None = None):
        super().__init__(
            f"Survey has reached its limit of {quota} respondent(s).",
            "QUOTA_EXCEEDED", ErrorCategory.STATE_CONFLICT,
            ErrorSeverity.WARNING, context, 400,
        )
        self.quota = quota


class ExpiryRejectedError(SurveyEngineError):
    """Expiry update refused with reason CLOSED_SURVEY or PAST_DATE."""
    _MESSAGES = {
        ExpiryRejection.CLOSED_SURVEY: "Cannot update expiry for a closed survey.",
        ExpiryRejection.PAST_DATE: "Expiry date must be in the future.",
    }

    def __init__(self, reason: ExpiryRejection, context: ErrorContext | None = None):
        super().__init__(
            self._MESSAGES[reason],
            f"EXPIRY_REJECTED_{reason.name}", ErrorCategory.STATE_CONFLICT,
            ErrorSeverity.WARNING, context, 400,
        )
        self.reason = reason


class NoResponsesError(SurveyEngineError):
    def __init__(self, action: str, context: ErrorContext | None = None):
        super().__init__(
            f"No responses available to {action}",
            "NO_RESPONSES", ErrorCategory.STATE_CONFLICT,
            ErrorSeverity.WARNING, context, 400,
        )


class SummaryUnavailableError(SurveyEngineError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "No summary available. Generate a summary first.",
            "SUMMARY_UNAVAILABLE", ErrorCategory.STATE_CONFLICT,
            ErrorSeverity.WARNING, context, 400,
        )


# ─── Infrastructure Errors ──────────────────────────────────────

class PersistenceConflictError(SurveyEngineError):
    """Concurrent write detected via revision mismatch. Retryable."""
    def __init__(self, survey_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.survey_id = ctx.survey_id or survey_id
        super().__init__(
            f"Survey '{survey_id}' was modified concurrently",
            "PERSISTENCE_CONFLICT", ErrorCategory.PERSISTENCE_CONFLICT,
            ErrorSeverity.WARNING, ctx, 409,
        )


class DatabaseError(SurveyEngineError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class UpstreamServiceError(SurveyEngineError):
    """AI collaborator call failed. Never invalidates committed survey state."""
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
            f"AI service error ({api_error_type}): {message}",
            "UPSTREAM_SERVICE_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, ctx, 503,
        )
        self.api_error_type = api_error_type
