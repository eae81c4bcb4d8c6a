"""Typed failures surfaced by the remote services and the dispatcher."""

from __future__ import annotations


class SyncError(RuntimeError):
    """Base class for failures of a single remote operation."""


class UnauthorizedError(SyncError):
    """The service rejected the credentials."""


class NotFoundError(SyncError):
    """The addressed resource does not exist."""


class ValidationFailedError(SyncError):
    """The service rejected the payload."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Validation failed: {detail}")
        self.detail = detail


class RateLimitedError(SyncError):
    """The service answered "too many requests"."""

    def __init__(
        self, message: str = "Too many requests", *, retry_after: float | None = None
    ) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class RetriesExhaustedError(RateLimitedError):
    """Rate-limit retries ran out for one operation."""

    def __init__(self, operation_id: str, *, attempts: int) -> None:
        super().__init__(
            f"Rate limit retries exhausted for {operation_id} after {attempts} attempts"
        )
        self.operation_id = operation_id
        self.attempts = attempts


class QuotaExceededError(SyncError):
    """The translation quota for the billing period is used up."""


class RemoteServiceError(SyncError):
    """Any other unexpected response from a remote service."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProcessingCancelledError(Exception):
    """Raised when a run was cancelled before an operation could be dispatched.

    Not a :class:`SyncError`: cancelled work is never scored as a failure.
    """
