"""
Error Definitions for lattice_sync

This module defines the exception classes raised by managers, synthesizers
and the stack deployer. Callers classify failures by type:

- ``NotFoundError`` is a branch condition (create instead of update).
- ``ConflictError`` and ``InvalidError`` are surfaced to the user.
- ``RetryError`` means the remote side is transitional; re-run the pass.
- ``FatalError`` subclasses indicate a bad desired-state graph and must not
  be retried blindly.
"""

from typing import Any, Dict, List, Optional


class LatticeSyncError(Exception):
    """Base exception class for all lattice_sync errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class NotFoundError(LatticeSyncError):
    """Raised when a named remote resource does not exist."""

    def __init__(self, resource_type: str, name: str, **details):
        message = f"{resource_type} {name} not found"

        super().__init__(message, details)
        self.resource_type = resource_type
        self.name = name


class ConflictError(LatticeSyncError):
    """Raised when a resource exists in a mutually-exclusive state."""

    def __init__(self, resource_type: str, name: str, message: str, **details):
        super().__init__(f"{resource_type} {name} had a conflict: {message}", details)
        self.resource_type = resource_type
        self.name = name
        self.reason = message


class InvalidError(LatticeSyncError):
    """Raised when a request references something malformed or missing."""

    def __init__(self, message: str, **details):
        super().__init__(f"Invalid input: {message}", details)
        self.reason = message


class RetryError(LatticeSyncError):
    """Raised when the remote state is transitional and the pass should be re-run."""

    def __init__(self, reason: str, **details):
        super().__init__(f"Retry required: {reason}", details)
        self.reason = reason


class SynthesisError(RetryError):
    """Aggregate of the failures collected while synthesizing one resource kind."""

    def __init__(self, kind: str, errors: List[Exception], **details):
        reason = f"{len(errors)} {kind} resource(s) failed to converge"
        super().__init__(reason, last_error=str(errors[-1]) if errors else None, **details)
        self.kind = kind
        self.errors = list(errors)

    @property
    def last(self) -> Optional[Exception]:
        return self.errors[-1] if self.errors else None


class FatalError(LatticeSyncError):
    """Raised for programmer or desired-state errors that retrying cannot fix."""


class ConfigurationError(FatalError):
    """Raised when configuration or a desired-state field is invalid."""

    def __init__(self, field: str, value: Any, expected: str, **details):
        message = f"Invalid configuration for {field}: got {value}, expected {expected}"

        super().__init__(message, {"field": field, "value": value, "expected": expected, **details})
        self.field = field
        self.value = value
        self.expected = expected


class UnsupportedKindError(FatalError):
    """Raised when a resource or policy target kind is not one this engine handles."""

    def __init__(self, kind: Any, supported: Optional[List[str]] = None, **details):
        message = f"Unsupported resource kind: {kind}"
        if supported:
            message += f" (supported: {', '.join(supported)})"

        super().__init__(message, details)
        self.kind = kind
        self.supported = supported or []


def is_retryable(err: BaseException) -> bool:
    """Return True when ``err`` only signals a transitional remote state."""
    return isinstance(err, RetryError)
