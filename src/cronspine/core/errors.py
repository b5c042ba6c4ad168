"""
Structured error types for cronspine.

Every failure the scheduling core can produce is a typed exception carrying a
category, a retry hint and structured context. The operations layer catches
these and converts them to ``OperationResult.fail`` codes, so transports
never see raw exceptions.

Manifesto:
    - **Typed hierarchy:** validation, lookup, runtime and run-state errors
      are distinct types, not strings
    - **Explicit retry semantics:** each error knows whether retrying could help
    - **Rich context:** job id, run id and runtime command travel with the error
    - **Error chaining:** the original exception is preserved as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                      CronSpineError                           │
        │      (category, retryable, retry_after, context, cause)      │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  ValidationError       NotFoundError       RunStateError      │
        │  (VALIDATION)          (NOT_FOUND)         (RUN_STATE)        │
        │                             │                    │            │
        │                        JobNotFoundError    RunAlreadyCompleted│
        │                        RunNotFoundError                       │
        │                                                               │
        │  ExternalRuntimeError  (RUNTIME)                              │
        │       │                                                       │
        │  RuntimeUnavailableError  RuntimeTimeoutError                 │
        │  (retryable)              (retryable)                         │
        │  RuntimeRejectedError                                         │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> err = ValidationError("bad cron", field="schedule", value="* * *")
    >>> err.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>
    >>> err.retryable
    False

    >>> RuntimeTimeoutError("openclaw timed out").retryable
    True

Guardrails:
    ❌ DON'T: raise bare ``Exception`` from scheduling code
    ✅ DO: raise the narrowest ``CronSpineError`` subclass

    ❌ DON'T: drop the original exception when wrapping subprocess failures
    ✅ DO: pass it as ``cause=``

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context, cronspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for routing, HTTP mapping and retry decisions.

    Attributes:
        VALIDATION: Malformed user input (cron, timezone, names, ids)
        NOT_FOUND: Unknown job or run
        RUN_STATE: Illegal run-record transition
        RUNTIME: External agent runtime failed or refused a command
        CONFIG: Missing or invalid settings
        INTERNAL: Bugs, unexpected state
    """

    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    RUN_STATE = "RUN_STATE"
    RUNTIME = "RUNTIME"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        job_id: Job the failing operation concerned
        run_id: Run record the failing operation concerned
        command: Runtime sub-command that was being executed
        exit_code: Process exit status for subprocess failures
        metadata: Any further key/value pairs
    """

    job_id: str | None = None
    run_id: str | None = None
    command: str | None = None
    exit_code: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ("job_id", "run_id", "command", "exit_code"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CronSpineError(Exception):
    """
    Base exception for all cronspine errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override either per instance.

    Examples:
        >>> err = CronSpineError("boom").with_context(job_id="nightly")
        >>> err.context.job_id
        'nightly'
        >>> err.to_dict()["category"]
        'INTERNAL'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CronSpineError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(CronSpineError):
    """Input failed validation. Never retryable.

    Carries the offending ``field``, its ``value`` and the violated
    ``constraint`` so transports can render field-level feedback.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.constraint = constraint

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field is not None:
            result["field"] = self.field
        if self.constraint is not None:
            result["constraint"] = self.constraint
        return result


# =============================================================================
# LOOKUP ERRORS
# =============================================================================


class NotFoundError(CronSpineError):
    """A referenced entity does not exist."""

    default_category = ErrorCategory.NOT_FOUND
    default_retryable = False


class JobNotFoundError(NotFoundError):
    """No job with the given id is known to the runtime."""

    def __init__(self, job_id: str, **kwargs: Any):
        super().__init__(f"Job '{job_id}' not found", **kwargs)
        self.context.job_id = job_id


class RunNotFoundError(NotFoundError):
    """No run record with the given id exists."""

    def __init__(self, run_id: str, **kwargs: Any):
        super().__init__(f"Run '{run_id}' not found", **kwargs)
        self.context.run_id = run_id


# =============================================================================
# RUN STATE ERRORS
# =============================================================================


class RunStateError(CronSpineError):
    """A run record transition is not allowed from its current state."""

    default_category = ErrorCategory.RUN_STATE
    default_retryable = False


class RunAlreadyCompletedError(RunStateError):
    """Completion was recorded twice for the same run."""

    def __init__(self, run_id: str, **kwargs: Any):
        super().__init__(f"Run '{run_id}' is already complete", **kwargs)
        self.context.run_id = run_id


# =============================================================================
# EXTERNAL RUNTIME ERRORS
# =============================================================================


class ExternalRuntimeError(CronSpineError):
    """The external agent runtime failed to carry out a command."""

    default_category = ErrorCategory.RUNTIME
    default_retryable = False


class RuntimeUnavailableError(ExternalRuntimeError):
    """The runtime could not be reached (binary missing, not configured)."""

    default_retryable = True


class RuntimeTimeoutError(ExternalRuntimeError):
    """The runtime did not answer within the configured timeout."""

    default_retryable = True


class RuntimeRejectedError(ExternalRuntimeError):
    """The runtime answered but refused the command (non-zero exit, bad payload)."""

    def __init__(self, message: str, *, stderr: str = "", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.stderr = stderr


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(CronSpineError):
    """Settings are missing or invalid."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class RuntimeNotConfiguredError(ConfigError):
    """An operation needs the agent runtime but none is configured."""

    def __init__(self, message: str = "No agent runtime configured", **kwargs: Any):
        super().__init__(message, **kwargs)

