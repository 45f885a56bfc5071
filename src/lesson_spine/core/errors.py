"""
Structured error types for lesson-spine.

Every failure the publication state machine can report is a
:class:`LessonSpineError` subclass carrying a stable ``code`` (for API
responses), a :class:`ErrorCategory` (for log routing), a ``retryable`` flag
and an :class:`ErrorContext` with the lesson/program involved.

Manifesto:
    - **Typed taxonomy:** callers branch on the class, never on message text
    - **Explicit retry semantics:** only store failures and deferred
      publishes are retryable; bad input and wrong state never are
    - **Rich context:** lesson_id / program_id / action travel with the error
    - **Error chaining:** driver exceptions are kept as ``cause``

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────────┐
        │                      LessonSpineError                          │
        ├───────────────────────────────────────────────────────────────┤
        │  ValidationError ──► ConflictError                             │
        │  NotFoundError                                                  │
        │  InvalidStateError          (action not allowed from status)   │
        │  PreconditionFailedError    (thumbnails missing on publish)    │
        │  TransientSkip              (scheduled publish deferred)       │
        │  InternalFailureError       (store / transaction failure)      │
        └───────────────────────────────────────────────────────────────┘

Propagation:
    On the synchronous path ``ValidationError``, ``InvalidStateError`` and
    ``PreconditionFailedError`` reach the caller before anything is
    committed. On the scheduled path ``TransientSkip`` is caught per lesson
    and logged; ``InternalFailureError`` aborts the whole tick.

Tags:
    error-handling, exception-hierarchy, retry-logic, lesson-spine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    VALIDATION = "VALIDATION"  # Malformed or missing input
    NOT_FOUND = "NOT_FOUND"  # Unknown entity
    STATE = "STATE"  # Transition not allowed from current status
    PRECONDITION = "PRECONDITION"  # Publish requirements unmet
    SCHEDULING = "SCHEDULING"  # Deferred scheduled work
    DATABASE = "DATABASE"  # Store / transaction failures
    CONFIG = "CONFIG"  # Missing or invalid settings
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error for logging and responses."""

    lesson_id: str | None = None
    program_id: str | None = None
    action: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, dropping unset fields."""
        result: dict[str, Any] = {}
        for key in ("lesson_id", "program_id", "action"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class LessonSpineError(Exception):
    """
    Base exception for all lesson-spine errors.

    Subclasses set ``code``, ``default_category`` and ``default_retryable``;
    instances may override category and retryability.

    Examples:
        >>> err = InvalidStateError("Only draft lessons can be scheduled")
        >>> err.code
        'invalid_state'
        >>> err.with_context(lesson_id="l-1").to_dict()["context"]
        {'lesson_id': 'l-1'}
    """

    code: str = "internal_error"
    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        details: Any = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.details = details
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> LessonSpineError:
        """Add context to this error (fluent API).

        Known fields (``lesson_id``, ``program_id``, ``action``) are set
        directly; anything else lands in ``metadata``.
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.details is not None:
            result["details"] = self.details
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, code={self.code})"


# =============================================================================
# CALLER ERRORS (never retryable)
# =============================================================================


class ValidationError(LessonSpineError):
    """Malformed or missing input, e.g. an unparseable or past ``publish_at``."""

    code = "validation_error"
    default_category = ErrorCategory.VALIDATION


class ConflictError(ValidationError):
    """Write would violate a uniqueness rule (lesson number within a term, ...)."""

    code = "conflict"


class NotFoundError(LessonSpineError):
    """Referenced lesson, term or program does not exist."""

    code = "not_found"
    default_category = ErrorCategory.NOT_FOUND


class InvalidStateError(LessonSpineError):
    """Action attempted from a status that forbids it."""

    code = "invalid_state"
    default_category = ErrorCategory.STATE


class PreconditionFailedError(LessonSpineError):
    """Publish requirement unmet on the synchronous ``publish_now`` path."""

    code = "precondition_failed"
    default_category = ErrorCategory.PRECONDITION


# =============================================================================
# SCHEDULED PATH
# =============================================================================


class TransientSkip(LessonSpineError):
    """
    Scheduled publish deferred for this tick.

    Raised by the coordinator for a single lesson whose publish
    precondition is unmet. It never escapes a tick: the coordinator logs
    it and leaves the lesson ``scheduled`` so the next tick re-evaluates it.
    """

    code = "transient_skip"
    default_category = ErrorCategory.SCHEDULING
    default_retryable = True


class InternalFailureError(LessonSpineError):
    """Data-store or transaction failure. The whole transaction is rolled back."""

    code = "internal_error"
    default_category = ErrorCategory.DATABASE
    default_retryable = True


class ConfigError(LessonSpineError):
    """Invalid or unsupported configuration."""

    code = "config_error"
    default_category = ErrorCategory.CONFIG


def is_retryable(error: BaseException) -> bool:
    """Return ``True`` when *error* is a retryable lesson-spine error."""
    return isinstance(error, LessonSpineError) and error.retryable


__all__ = [
    "ConfigError",
    "ConflictError",
    "ErrorCategory",
    "ErrorContext",
    "InternalFailureError",
    "InvalidStateError",
    "LessonSpineError",
    "NotFoundError",
    "PreconditionFailedError",
    "TransientSkip",
    "ValidationError",
    "is_retryable",
]
