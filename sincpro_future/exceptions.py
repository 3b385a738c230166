"""
Exception module for sincpro_future.

This module defines specific exceptions that may be raised by the component.
Errors raised by tasks are never wrapped while they travel down a chain; they
are only wrapped by the blocking retrieval methods.
"""

from typing import Optional


class FutureError(Exception):
    """Base exception for errors in sincpro_future."""


class AwaitFailure(FutureError):
    """Raised when blocking on a future that was rejected."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class ExecutionError(AwaitFailure):
    """Raised by ``get()`` when the awaited computation failed."""


class CompletionError(AwaitFailure):
    """Raised by ``join()`` when the awaited computation failed."""


class FutureCancelledError(FutureError):
    """Stored as the cause of a cancelled future."""


class WorkerNotRunningError(FutureError):
    """Raised when trying to use the worker when it's not running."""
