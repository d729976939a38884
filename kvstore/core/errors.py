"""Error Hierarchy — typed, categorized exceptions for every store failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Caller errors (key, value, validation) are raised synchronously from get/set/delete
    - Storage errors (not initialized, I/O, timeout) surface from init/sync/create_backup
    - to_dict() produces the same envelope for every error type

Design Decisions:
    - Single hierarchy with KVStoreError base: callers can catch the whole family at once
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    INVALID_KEY = "invalid_key"
    SERIALIZATION = "serialization"
    VALIDATION = "validation"
    LIFECYCLE = "lifecycle"
    STORAGE = "storage"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    key: str | None = None
    operation: str | None = None
    adapter: str | None = None
    debug_info: dict[str, Any] | None = None


class KVStoreError(Exception):
    """Base exception for all key-value store errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def to_dict(self) -> dict:
        """Convert to the standardized error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "key": self.context.key,
                    "operation": self.context.operation,
                    "adapter": self.context.adapter,
                    "debug_info": self.context.debug_info,
                },
            }
        }


# ─── Caller Errors ──────────────────────────────────────────────

class InvalidKeyError(KVStoreError):
    """Key is not a string, or is the reserved version key."""
    def __init__(self, key: object, reason: str = "Key must be a string", context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.debug_info = {"key_type": type(key).__name__}
        super().__init__(
            f"{reason} (got {key!r})", "INVALID_KEY", ErrorCategory.INVALID_KEY,
            ErrorSeverity.ERROR, ctx,
        )
        self.key = key


class NotSerializableError(KVStoreError):
    """Value cannot be represented as JSON (cycle, NaN, unsupported type)."""
    def __init__(self, key: str | None, reason: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.key = key
        super().__init__(
            f"Value must be JSON serializable: {reason}",
            "NOT_SERIALIZABLE", ErrorCategory.SERIALIZATION,
            ErrorSeverity.ERROR, ctx,
        )
        self.reason = reason


class ValidationFailedError(KVStoreError):
    """Validator rejected the value; message is the validator's own."""
    def __init__(
        self,
        message: str,
        key: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.key = key
        if errors is not None:
            ctx.debug_info = {"errors": errors}
        super().__init__(
            message, "VALIDATION_FAILED", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx,
        )
        self.errors = errors or []


# ─── Storage Errors ─────────────────────────────────────────────

class NotInitializedError(KVStoreError):
    """Adapter method called before a successful init()."""
    def __init__(self, adapter: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.adapter = adapter
        super().__init__(
            f"{adapter} not initialized. Call init() first.",
            "NOT_INITIALIZED", ErrorCategory.LIFECYCLE,
            ErrorSeverity.ERROR, ctx,
        )
        self.adapter = adapter


class AdapterIOError(KVStoreError):
    """Underlying storage medium failed (unreachable path, corrupt file, disk full)."""
    def __init__(
        self,
        message: str,
        operation: str,
        adapter: str | None = None,
        context: ErrorContext | None = None,
        code: str = "ADAPTER_IO",
        category: ErrorCategory = ErrorCategory.STORAGE,
    ):
        ctx = context or ErrorContext()
        ctx.operation = operation
        ctx.adapter = adapter
        super().__init__(message, code, category, ErrorSeverity.CRITICAL, ctx)
        self.operation = operation
        self.adapter = adapter


class AdapterTimeoutError(AdapterIOError):
    """Adapter call did not complete within the configured timeout."""
    def __init__(
        self, operation: str, timeout_seconds: float,
        adapter: str | None = None, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Adapter {operation} timed out after {timeout_seconds}s",
            operation, adapter, context,
            code="ADAPTER_TIMEOUT", category=ErrorCategory.TIMEOUT,
        )
        self.timeout_seconds = timeout_seconds
