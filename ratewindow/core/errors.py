"""Library-level exception types.

This module defines the errors raised by the decision core, enabling
consistent handling and logging by the collaborators that call it.

Taxonomy:
- InvalidSpecError: bad quota/key input, rejected before any store access
- StoreUnavailableError: backend I/O failure, timeout or serialization error
- StoreRaceError: a store broke its atomicity contract (conformance defect)

The core never retries. Fail-open vs fail-closed is the caller's decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Fields are optional; producers fill what they know.
    """

    code: str
    message: str
    hint: str
    field: str
    limit: int
    window_ms: int
    key_hash: str
    store: str
    operation: str
    cause: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for all failures raised by the library.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class InvalidSpecError(ValidationAppError):
    """Raised when a quota spec, key or algorithm name is invalid.

    Fatal to the call and never retried.
    """


class StoreAppError(AppError):
    """Base class for counter store failures."""


class StoreUnavailableError(StoreAppError):
    """Raised when the counter store cannot be reached or fails to answer."""


class StoreRaceError(StoreAppError):
    """Raised when a store returns state that proves a lost or duplicated update.

    This is a backend conformance defect, not a runtime condition to recover from.
    """
