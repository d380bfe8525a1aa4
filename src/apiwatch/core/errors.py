"""
Structured error types for apiwatch.

Every failure a watch job can hit is an :class:`ApiWatchError` subclass that
carries a category, structured context and the underlying cause. Failures are
not retried (a failed job is reported once and the process moves on), so
unlike a general-purpose pipeline framework there is no retry metadata here:
the category and context exist so the final report says *where* a job broke.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     ApiWatchError                            │
        │            (category, context, cause)                        │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ConfigSourceError   FetchError        SigningKeyError       │
        │  (CONFIG)            (SOURCE)          (CONFIG)              │
        │                                                              │
        │  SubmissionError     LedgerError       JobError              │
        │  (LEDGER)            (LEDGER)          (INTERNAL)            │
        │     │                                                        │
        │  CommitError  RevealError  EntryError (VALIDATION)           │
        └─────────────────────────────────────────────────────────────┘

Propagation:
    - Per-job errors are caught at the job boundary and become
      ``FailureRecord`` values in the error collector.
    - ``ConfigSourceError`` raised while *opening* the job source is the only
      error that terminates the process.

Usage:
    from apiwatch.core.errors import FetchError

    if response.status_code != 200:
        raise FetchError(response.text).with_context(
            url=url, http_status=response.status_code
        )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories used for grouping failures in the run report.

    Attributes:
        CONFIG: Job source or key material problems
        SOURCE: Watched endpoint returned an error or was unreachable
        LEDGER: Commit/reveal or ledger transport failures
        VALIDATION: Entry shape violations (bad chain id, oversized entry)
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    CONFIG = "CONFIG"
    SOURCE = "SOURCE"
    LEDGER = "LEDGER"
    VALIDATION = "VALIDATION"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only the fields relevant to a failure are set; ``to_dict()`` drops the
    rest so log lines stay short.

    Attributes:
        job: Label of the watch job (its API method URL)
        chain_id: Target chain of the job
        url: URL that was being accessed
        http_status: HTTP status code if applicable
        phase: Ledger phase (``commit`` or ``reveal``)
        record_index: Zero-based index of a record in the job source
        metadata: Additional key-value pairs
    """

    job: str | None = None
    chain_id: str | None = None
    url: str | None = None
    http_status: int | None = None
    phase: str | None = None
    record_index: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["job", "chain_id", "url", "http_status", "phase", "record_index"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ApiWatchError(Exception):
    """
    Base exception for all apiwatch errors.

    Subclasses set ``default_category``; callers may override it per
    instance. The optional ``cause`` is chained as ``__cause__`` so
    tracebacks show the original transport or decoding error.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ApiWatchError:
        """
        Add context to this error (fluent API).

        Usage:
            raise FetchError("timeout").with_context(url=url, job=label)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# JOB SOURCE
# =============================================================================


class ConfigSourceError(ApiWatchError):
    """
    The job descriptor source cannot be opened or holds a malformed record.

    Raised from ``JobSource.open`` it is fatal to the process. Raised during
    iteration it stops further dispatch; jobs already launched keep running.
    """

    default_category = ErrorCategory.CONFIG


# =============================================================================
# JOB PIPELINE
# =============================================================================


class FetchError(ApiWatchError):
    """
    The watched endpoint answered with a non-200 status or could not be reached.

    For a non-200 response the message is the response body verbatim and
    ``context.http_status`` holds the status code.
    """

    default_category = ErrorCategory.SOURCE


class SigningKeyError(ApiWatchError):
    """The job's secret key is not valid hex or not a 64-byte Ed25519 key."""

    default_category = ErrorCategory.CONFIG


class SubmissionError(ApiWatchError):
    """Anchoring the signed entry on the ledger failed."""

    default_category = ErrorCategory.LEDGER


class CommitError(SubmissionError):
    """Commit phase failed; reveal was never attempted."""

    pass


class RevealError(SubmissionError):
    """
    Reveal phase failed after a successful commit.

    The commit is not rolled back. The entry is paid for but unpublished
    and has to be revealed (or abandoned) by hand.
    """

    pass


class EntryError(SubmissionError):
    """The entry cannot be built or marshalled (bad chain id, too large)."""

    default_category = ErrorCategory.VALIDATION


class LedgerError(ApiWatchError):
    """Transport or JSON-RPC error returned by a ledger client."""

    default_category = ErrorCategory.LEDGER

    def __init__(self, message: str, *, code: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.code = code


class JobError(ApiWatchError):
    """Unexpected exception caught at the job boundary."""

    default_category = ErrorCategory.INTERNAL


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, ApiWatchError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.SOURCE
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ApiWatchError",
    "ConfigSourceError",
    "FetchError",
    "SigningKeyError",
    "SubmissionError",
    "CommitError",
    "RevealError",
    "EntryError",
    "LedgerError",
    "JobError",
    "categorize_error",
]
