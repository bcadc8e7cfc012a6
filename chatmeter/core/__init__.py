"""Core module with errors, logging, metrics, and middleware."""

from chatmeter.core.errors import (
    AppError,
    ChatNotFoundError,
    ConfigurationError,
    ErrorCode,
    ErrorResponse,
    ForbiddenError,
    InvalidAttachmentError,
    ModelNotPermittedError,
    ModelUnavailableError,
    NotFoundError,
    ProviderAuthError,
    ProviderBadResponseError,
    ProviderError,
    ProviderErrorKind,
    ProviderNotConfiguredError,
    ProviderRateLimitedError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    QuotaExceededError,
    RateLimitError,
    UnauthorizedError,
    ValidationError,
)
from chatmeter.core.logging import (
    get_logger,
    request_id_ctx,
    setup_logging,
    stream_id_ctx,
    user_id_ctx,
)

__all__ = [
    # Errors
    "AppError",
    "ChatNotFoundError",
    "ConfigurationError",
    "ErrorCode",
    "ErrorResponse",
    "ForbiddenError",
    "InvalidAttachmentError",
    "ModelNotPermittedError",
    "ModelUnavailableError",
    "NotFoundError",
    "ProviderAuthError",
    "ProviderBadResponseError",
    "ProviderError",
    "ProviderErrorKind",
    "ProviderNotConfiguredError",
    "ProviderRateLimitedError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "QuotaExceededError",
    "RateLimitError",
    "UnauthorizedError",
    "ValidationError",
    # Logging
    "get_logger",
    "setup_logging",
    "request_id_ctx",
    "stream_id_ctx",
    "user_id_ctx",
]
