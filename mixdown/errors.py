"""
Mixdown Errors - Domain-specific error types.

Error hierarchy:
    MixdownError (base)
    ├── StructuralError          (fatal, raised before any engine call)
    ├── GraphValidationException (see mixdown.validation)
    └── EngineError
        ├── RetryableEngineError
        │   └── EngineTimeoutError
        └── PermanentEngineError

Every error carries a stable machine-readable ``kind`` and a human
message, so callers can surface ``error.to_dict()`` directly.
"""

from __future__ import annotations

from typing import Any


# Status codes that indicate a transient engine-side condition.
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


class MixdownError(Exception):
    """Base error for all mixdown failures."""

    kind = "mixdown_error"

    def __init__(
        self,
        message: str,
        kind: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Structured form for callers."""
        return {
            "kind": self.kind,
            "message": self.message,
            "details": dict(self.details),
        }


class StructuralError(MixdownError):
    """
    Raised when a request cannot be processed at all.

    Examples:
    - No dialogue input for a scene mix
    - Two inputs for the same role
    - Zero scenes to concatenate
    """

    kind = "structural"


class EngineError(MixdownError):
    """Failure reported by (or while talking to) the audio engine."""

    kind = "engine_error"
    retryable = False

    def __init__(
        self,
        message: str,
        status: int | None = None,
        kind: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, kind=kind, details=details)
        self.status = status
        if status is not None and status in RETRYABLE_STATUSES:
            self.retryable = True


class RetryableEngineError(EngineError):
    """Transient failure: rate limiting or a temporary server condition."""

    kind = "engine_unavailable"
    retryable = True


class EngineTimeoutError(RetryableEngineError):
    """An engine call exceeded its time budget."""

    kind = "engine_timeout"

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"Engine call '{operation}' timed out after {timeout:g}s",
            details={"operation": operation, "timeout": timeout},
        )
        self.operation = operation
        self.timeout = timeout


class PermanentEngineError(EngineError):
    """Malformed request or permanent rejection. Never retried."""

    kind = "engine_rejected"
    retryable = False


def is_retryable(error: BaseException) -> bool:
    """True if ``error`` should be retried with backoff."""
    if isinstance(error, EngineError):
        return error.retryable
    status = getattr(error, "status", None)
    return isinstance(status, int) and status in RETRYABLE_STATUSES


__all__ = [
    "RETRYABLE_STATUSES",
    "MixdownError",
    "StructuralError",
    "EngineError",
    "RetryableEngineError",
    "EngineTimeoutError",
    "PermanentEngineError",
    "is_retryable",
]
