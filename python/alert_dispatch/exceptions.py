"""
Custom exception hierarchy for the alert dispatch engine.

Follows a clear exception hierarchy:
- DispatchEngineError: Base exception for all engine-specific errors
- ConfigurationError: Package configuration issues
- ConfigValidationError: Channel settings rejected at notifier construction
- TemplateError: Template rendering failures during notify
- DispatchError: Transport failures, bad status codes and cancellation

Each exception includes:
- error_code: Machine-readable error identifier
- context: Additional structured data for debugging
- is_retryable: Whether the operation can be retried
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes for categorization and monitoring."""

    # Configuration errors (1xxx)
    CONFIG_INVALID = "NOTIFY_1001"
    CONFIG_MISSING = "NOTIFY_1002"
    CONFIG_VALIDATION = "NOTIFY_1003"
    CHANNEL_SETTING_MISSING = "NOTIFY_1004"
    CHANNEL_SETTING_INVALID = "NOTIFY_1005"
    CHANNEL_TYPE_UNKNOWN = "NOTIFY_1006"

    # Template errors (2xxx)
    TEMPLATE_RENDER_FAILED = "NOTIFY_2001"

    # Dispatch errors (3xxx)
    DISPATCH_TRANSPORT_FAILED = "NOTIFY_3001"
    DISPATCH_BAD_STATUS = "NOTIFY_3002"
    DISPATCH_CANCELLED = "NOTIFY_3003"
    DISPATCH_INVALID_RESPONSE = "NOTIFY_3004"

    # General errors (9xxx)
    UNKNOWN = "NOTIFY_9999"


@dataclass
class DispatchEngineError(Exception):
    """
    Base exception for all dispatch engine errors.

    Provides structured error information for logging and monitoring.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        context: Additional structured data for debugging
        is_retryable: Whether the operation can be safely retried
        cause: Original exception that caused this error
    """

    message: str
    error_code: ErrorCode = ErrorCode.UNKNOWN
    context: dict[str, Any] = field(default_factory=dict)
    is_retryable: bool = False
    cause: Exception | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.error_code.value}] {self.message}"]
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f" ({context_str})")
        return "".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"context={self.context!r}, "
            f"is_retryable={self.is_retryable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "context": self.context,
            "is_retryable": self.is_retryable,
            "cause": str(self.cause) if self.cause else None,
        }


@dataclass
class ConfigurationError(DispatchEngineError):
    """Raised when package configuration is invalid or missing."""

    error_code: ErrorCode = ErrorCode.CONFIG_INVALID

    @classmethod
    def missing_file(cls, path: str) -> ConfigurationError:
        """Create error for missing configuration file."""
        return cls(
            message=f"Configuration file not found: {path}",
            error_code=ErrorCode.CONFIG_MISSING,
            context={"path": path},
        )

    @classmethod
    def validation_failed(cls, field: str, value: Any, reason: str) -> ConfigurationError:
        """Create error for validation failure."""
        return cls(
            message=f"Configuration validation failed for '{field}': {reason}",
            error_code=ErrorCode.CONFIG_VALIDATION,
            context={"field": field, "value": str(value), "reason": reason},
        )


@dataclass
class ConfigValidationError(DispatchEngineError):
    """
    Raised when a channel's settings are rejected at construction time.

    The message is the reason shown to the operator verbatim, so it never
    contains secret values.
    """

    error_code: ErrorCode = ErrorCode.CHANNEL_SETTING_INVALID

    @property
    def reason(self) -> str:
        """The human readable reason the channel was rejected."""
        return self.message

    @classmethod
    def missing_setting(cls, setting: str, reason: str) -> ConfigValidationError:
        """Create error for a required setting that is absent or empty."""
        return cls(
            message=reason,
            error_code=ErrorCode.CHANNEL_SETTING_MISSING,
            context={"setting": setting},
        )

    @classmethod
    def invalid_setting(cls, setting: str, reason: str) -> ConfigValidationError:
        """Create error for a setting that is present but malformed."""
        return cls(
            message=reason,
            error_code=ErrorCode.CHANNEL_SETTING_INVALID,
            context={"setting": setting},
        )


@dataclass
class UnknownChannelTypeError(ConfigValidationError):
    """Raised when no notifier is registered for a channel type tag."""

    error_code: ErrorCode = ErrorCode.CHANNEL_TYPE_UNKNOWN

    @classmethod
    def for_type(cls, channel_type: str) -> UnknownChannelTypeError:
        """Create error for an unregistered type tag."""
        return cls(
            message=f"Unsupported channel type: {channel_type!r}",
            context={"type": channel_type},
        )


@dataclass
class TemplateError(DispatchEngineError):
    """Raised when a template fragment fails to render."""

    error_code: ErrorCode = ErrorCode.TEMPLATE_RENDER_FAILED

    @classmethod
    def render_failed(
        cls, fragment: str, reason: str, cause: Exception | None = None
    ) -> TemplateError:
        """Create error for a failed template fragment."""
        return cls(
            message=f"Failed to render template '{fragment}': {reason}",
            context={"fragment": fragment},
            cause=cause,
        )


@dataclass
class DispatchError(DispatchEngineError):
    """Raised when the transport reports a failed delivery."""

    error_code: ErrorCode = ErrorCode.DISPATCH_TRANSPORT_FAILED
    is_retryable: bool = True

    @classmethod
    def transport_failed(
        cls, url: str, reason: str, cause: Exception | None = None
    ) -> DispatchError:
        """Create error for network level failures."""
        return cls(
            message=f"Failed to send request to {url}: {reason}",
            error_code=ErrorCode.DISPATCH_TRANSPORT_FAILED,
            context={"url": url, "reason": reason},
            cause=cause,
        )

    @classmethod
    def bad_status(cls, url: str, status_code: int, body: str = "") -> DispatchError:
        """Create error for a non-success HTTP status."""
        truncated = body[:200] + "..." if len(body) > 200 else body
        return cls(
            message=f"Webhook response status {status_code}",
            error_code=ErrorCode.DISPATCH_BAD_STATUS,
            context={"url": url, "status_code": status_code, "body": truncated},
            is_retryable=status_code == 429 or status_code >= 500,
        )

    @classmethod
    def cancelled(cls, url: str, reason: str = "context cancelled") -> DispatchError:
        """Create error for a dispatch aborted before it was sent."""
        return cls(
            message=f"Dispatch cancelled: {reason}",
            error_code=ErrorCode.DISPATCH_CANCELLED,
            context={"url": url},
            is_retryable=False,
        )

    @classmethod
    def invalid_response(cls, url: str, reason: str) -> DispatchError:
        """Create error for a response body the channel rejects."""
        return cls(
            message=f"Invalid response: {reason}",
            error_code=ErrorCode.DISPATCH_INVALID_RESPONSE,
            context={"url": url, "reason": reason},
            is_retryable=False,
        )
