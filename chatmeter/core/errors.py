"""
Structured error handling with stable error codes.

No stack traces are exposed to clients. All errors are mapped to
stable, documented error codes for reliable client handling, both in
JSON error bodies and in terminal SSE ``error`` events.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes for API responses and stream events."""

    # General errors (1xxx)
    INTERNAL_ERROR = "E1000"
    VALIDATION_ERROR = "E1001"
    NOT_FOUND = "E1002"
    METHOD_NOT_ALLOWED = "E1003"
    CONFIGURATION_ERROR = "E1004"

    # Admission errors (2xxx)
    UNAUTHORIZED = "E2000"
    RATE_LIMITED = "E2001"
    QUOTA_EXCEEDED = "E2002"

    # Authorization errors (3xxx)
    FORBIDDEN = "E3000"
    MODEL_NOT_PERMITTED = "E3001"

    # Provider errors (4xxx)
    PROVIDER_UNAVAILABLE = "E4000"
    PROVIDER_ERROR = "E4001"
    MODEL_UNAVAILABLE = "E4002"
    PROVIDER_TIMEOUT = "E4003"
    PROVIDER_BAD_RESPONSE = "E4004"
    PROVIDER_AUTH_FAILED = "E4005"
    PROVIDER_RATE_LIMITED = "E4006"
    PROVIDER_NOT_CONFIGURED = "E4007"

    # Resource errors (5xxx)
    CHAT_NOT_FOUND = "E5000"
    INVALID_ATTACHMENT = "E5001"


class ProviderErrorKind(str, Enum):
    """Whether a provider failure is worth one retry on a fallback model."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


@dataclass(frozen=True)
class ErrorResponse:
    """Structured error response for API.

    Format: {error: {code, message, request_id, details?}}
    """

    code: ErrorCode
    message: str
    request_id: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        error: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.request_id:
            error["request_id"] = self.request_id
        if self.details:
            error["details"] = self.details
        return {"error": error}


class AppError(Exception):
    """Base application error with structured error detail."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)

    def to_response(self, request_id: str | None = None) -> ErrorResponse:
        """Create error response with request ID."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            request_id=request_id,
            details=self.details,
        )


# Convenience error classes
class ValidationError(AppError):
    """Validation error (400)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.VALIDATION_ERROR, message, 400, details)


class ConfigurationError(AppError):
    """Server-side misconfiguration (500)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.CONFIGURATION_ERROR, message, 500, details)


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(ErrorCode.NOT_FOUND, message, 404)


class ChatNotFoundError(AppError):
    """Chat missing or not owned by the caller (404)."""

    def __init__(self, message: str = "Chat not found."):
        super().__init__(ErrorCode.CHAT_NOT_FOUND, message, 404)


class UnauthorizedError(AppError):
    """Authentication required (401)."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(ErrorCode.UNAUTHORIZED, message, 401)


class ForbiddenError(AppError):
    """Access denied (403)."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(ErrorCode.FORBIDDEN, message, 403)


class ModelNotPermittedError(AppError):
    """Model exists but the caller's plan may not use it (403)."""

    def __init__(
        self,
        message: str = "Model is not available on your current plan.",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(ErrorCode.MODEL_NOT_PERMITTED, message, 403, details)


class ModelUnavailableError(AppError):
    """Unknown or disabled model (400)."""

    def __init__(
        self,
        message: str = "Model not found or disabled.",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(ErrorCode.MODEL_UNAVAILABLE, message, 400, details)


class InvalidAttachmentError(AppError):
    """Attachment missing, not owned, or not ready (400)."""

    def __init__(
        self,
        message: str = "One or more attachments are invalid or not ready.",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(ErrorCode.INVALID_ATTACHMENT, message, 400, details)


class RateLimitError(AppError):
    """Rate limit exceeded (429)."""

    def __init__(
        self,
        message: str = "Rate limit exceeded for your plan.",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(ErrorCode.RATE_LIMITED, message, 429, details)


class QuotaExceededError(AppError):
    """Daily or monthly quota exhausted (402)."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        merged = {"reason": reason}
        if details:
            merged.update(details)
        self.reason = reason
        super().__init__(ErrorCode.QUOTA_EXCEEDED, reason, 402, merged)


class ProviderError(AppError):
    """Upstream provider failure (502).

    ``kind`` tells the provider gateway whether a fallback attempt is
    allowed. The base class is permanent.
    """

    kind: ProviderErrorKind = ProviderErrorKind.PERMANENT

    def __init__(
        self,
        message: str = "Provider error",
        details: dict[str, Any] | None = None,
        *,
        code: ErrorCode = ErrorCode.PROVIDER_ERROR,
        status_code: int = 502,
    ):
        super().__init__(code, message, status_code, details)

    @property
    def is_transient(self) -> bool:
        return self.kind is ProviderErrorKind.TRANSIENT


class ProviderUnavailableError(ProviderError):
    """Provider unreachable or returning 5xx (503)."""

    kind = ProviderErrorKind.TRANSIENT

    def __init__(
        self, message: str = "Provider unavailable", details: dict[str, Any] | None = None
    ):
        super().__init__(
            message, details, code=ErrorCode.PROVIDER_UNAVAILABLE, status_code=503
        )


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within the configured timeout (504)."""

    kind = ProviderErrorKind.TRANSIENT

    def __init__(
        self, message: str = "Provider request timed out", details: dict[str, Any] | None = None
    ):
        super().__init__(message, details, code=ErrorCode.PROVIDER_TIMEOUT, status_code=504)


class ProviderRateLimitedError(ProviderError):
    """Provider throttled the request (503)."""

    kind = ProviderErrorKind.TRANSIENT

    def __init__(
        self, message: str = "Provider rate limit exceeded", details: dict[str, Any] | None = None
    ):
        super().__init__(
            message, details, code=ErrorCode.PROVIDER_RATE_LIMITED, status_code=503
        )


class ProviderBadResponseError(ProviderError):
    """Provider returned malformed response (502)."""

    def __init__(
        self, message: str = "Provider returned invalid response", details: dict[str, Any] | None = None
    ):
        super().__init__(message, details, code=ErrorCode.PROVIDER_BAD_RESPONSE)


class ProviderAuthError(ProviderError):
    """Provider authentication failed (401/403 upstream, 502 to the caller)."""

    def __init__(
        self,
        message: str = "Provider authentication failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details, code=ErrorCode.PROVIDER_AUTH_FAILED)


class ProviderNotConfiguredError(ProviderError):
    """Provider API key missing (502)."""

    def __init__(
        self, message: str = "Provider is not configured", details: dict[str, Any] | None = None
    ):
        super().__init__(message, details, code=ErrorCode.PROVIDER_NOT_CONFIGURED)
