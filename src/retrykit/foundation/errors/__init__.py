"""Unified error handling for retrykit.

- RetryKitError: Base class for every error raised by the package
- RetryCountExceeded: Exhaustion sentinel type
- Cancelled/DeadlineExceeded: Cancel scope causes
- StorageError: Durable storage failures
- JoinedError/join_errors/is_error: Multi-error composition and inspection
"""

from .errors import (
    Cancelled,
    DeadlineExceeded,
    JoinedError,
    RetryCountExceeded,
    RetryKitError,
    StorageError,
    is_error,
    join_errors,
)

__all__ = [
    "RetryKitError", "RetryCountExceeded", "Cancelled", "DeadlineExceeded", "StorageError",
    "JoinedError", "join_errors", "is_error",
]
