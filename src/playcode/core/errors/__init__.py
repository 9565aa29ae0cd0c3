"""
Unified error module.
"""

from .errors import (
    ErrorSeverity,
    PlayCodeError,
    ValidationError,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
    PayloadTooLargeError,
    RateLimitError,
    ConfigurationError,
    ServiceUnavailableError,
    IntegrationError,
    PaymentError,
    TokenError,
    Result,
)

__all__ = [
    "ErrorSeverity",
    "PlayCodeError",
    "ValidationError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "PayloadTooLargeError",
    "RateLimitError",
    "ConfigurationError",
    "ServiceUnavailableError",
    "IntegrationError",
    "PaymentError",
    "TokenError",
    "Result",
]
