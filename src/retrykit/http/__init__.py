"""HTTP integration: retrying httpx transports and outcome classification.

- RetryTransport/AsyncRetryTransport: Re-send requests under a retry policy
- default_handle_response/classify: Map responses and transport errors to Results
"""

from .classify import (
    ResponseHandler,
    classify,
    default_handle_response,
    is_cert_error,
    is_permanent_error,
    is_retryable_status,
    parse_retry_after,
)
from .transport import SCOPE_EXTENSION, AsyncRetryTransport, RetryTransport

__all__ = [
    "RetryTransport", "AsyncRetryTransport", "SCOPE_EXTENSION",
    "ResponseHandler", "default_handle_response", "classify",
    "is_permanent_error", "is_cert_error", "is_retryable_status", "parse_retry_after",
]
