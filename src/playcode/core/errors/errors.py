"""
Unified errors and a Result wrapper.

Every error carries a stable code and the HTTP status the API layer renders it
with, so services can raise without knowing about FastAPI.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Generic, TypeVar, Union, cast


class ErrorSeverity(Enum):
    WARNING = "warning"      # caller may continue
    ERROR = "error"          # operation failed
    CRITICAL = "critical"    # service misconfigured


@dataclass(eq=False)
class PlayCodeError(Exception):
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    code: str = "UNKNOWN"
    context: Dict[str, Any] | None = None

    status_code: ClassVar[int] = 500

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.context or None,
        }


@dataclass(eq=False)
class ValidationError(PlayCodeError):
    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "VALIDATION_ERROR"

    status_code: ClassVar[int] = 400


@dataclass(eq=False)
class AuthenticationError(PlayCodeError):
    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "UNAUTHORIZED"

    status_code: ClassVar[int] = 401


@dataclass(eq=False)
class ForbiddenError(PlayCodeError):
    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "FORBIDDEN"

    status_code: ClassVar[int] = 403


@dataclass(eq=False)
class NotFoundError(PlayCodeError):
    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "NOT_FOUND"

    status_code: ClassVar[int] = 404


@dataclass(eq=False)
class ConflictError(PlayCodeError):
    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "CONFLICT"

    status_code: ClassVar[int] = 409


@dataclass(eq=False)
class PayloadTooLargeError(PlayCodeError):
    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "PAYLOAD_TOO_LARGE"

    status_code: ClassVar[int] = 413


@dataclass(eq=False)
class RateLimitError(PlayCodeError):
    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "RATE_LIMITED"

    status_code: ClassVar[int] = 429


@dataclass(eq=False)
class ServiceUnavailableError(PlayCodeError):
    code: str = "SERVICE_UNAVAILABLE"

    status_code: ClassVar[int] = 503


@dataclass(eq=False)
class ConfigurationError(PlayCodeError):
    severity: ErrorSeverity = ErrorSeverity.CRITICAL
    code: str = "CONFIGURATION_ERROR"

    status_code: ClassVar[int] = 500


@dataclass(eq=False)
class IntegrationError(PlayCodeError):
    code: str = "INTEGRATION_ERROR"

    status_code: ClassVar[int] = 502


@dataclass(eq=False)
class PaymentError(PlayCodeError):
    code: str = "PAYMENT_ERROR"

    status_code: ClassVar[int] = 400


@dataclass(eq=False)
class TokenError(PlayCodeError):
    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "TOKEN_INVALID"

    status_code: ClassVar[int] = 400


T = TypeVar("T")
E = TypeVar("E", bound=PlayCodeError)


@dataclass
class Result(Generic[T, E]):
    """Functional result wrapper instead of ad-hoc status dicts."""

    _value: Union[T, E]
    _is_ok: bool

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(_value=value, _is_ok=True)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(_value=error, _is_ok=False)

    def is_ok(self) -> bool:
        return self._is_ok

    @property
    def error(self) -> E | None:
        return None if self._is_ok else cast(E, self._value)

    def unwrap(self) -> T:
        if not self._is_ok:
            raise cast(E, self._value)
        return cast(T, self._value)

    def unwrap_or(self, default: T) -> T:
        return cast(T, self._value) if self._is_ok else default

    def map(self, fn) -> "Result[T, E]":
        if self._is_ok:
            return Result.ok(fn(self._value))  # type: ignore[arg-type]
        return self
