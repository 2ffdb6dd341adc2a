"""Classification of HTTP outcomes into retry Results.

Transport errors that cannot succeed on retry (redirect loops, bad schemes,
malformed headers, untrusted certificates) abort; other errors are recovered
and retried. Responses are retried on 429 and on 5xx other than 501.

Some of these failures are only distinguishable by message, so the patterns
below are compiled once at import and never change afterwards.
"""

from __future__ import annotations

import re
import ssl
from typing import TYPE_CHECKING, Callable, TypeAlias

import httpx

from retrykit.foundation.config import get_settings
from retrykit.runtime.retry import Abort, Continue, Finish, Recover, Result, RetryAfter

if TYPE_CHECKING:
    from retrykit.runtime.concurrency import CancelScope

ResponseHandler: TypeAlias = Callable[
    ["CancelScope", "httpx.Response | None", "Exception | None"], Result
]

# Redirect limit exhausted.
_REDIRECTS_RE = re.compile(r"(exceeded maximum allowed redirects|stopped after \d+ redirects)", re.IGNORECASE)

# URL without scheme, or with one no transport handles.
_SCHEME_RE = re.compile(
    r"(missing an 'http://' or 'https://' protocol|missing protocol scheme|unsupported protocol scheme)",
    re.IGNORECASE,
)

# Request header name or value rejected before it hits the wire.
_INVALID_HEADER_RE = re.compile(r"(invalid|illegal) header", re.IGNORECASE)

# TLS verification failure reported only as text (e.g. through a proxy).
_CERT_RE = re.compile(r"(certificate verify failed|certificate is not trusted)", re.IGNORECASE)

_DELTA_SECONDS_RE = re.compile(r"[0-9]+")

_PERMANENT_PATTERNS: tuple[re.Pattern[str], ...] = (_REDIRECTS_RE, _SCHEME_RE, _INVALID_HEADER_RE, _CERT_RE)

_PERMANENT_TYPES: tuple[type[Exception], ...] = (
    httpx.TooManyRedirects,
    httpx.UnsupportedProtocol,
    httpx.InvalidURL,
)

TOO_MANY_REQUESTS = 429
NOT_IMPLEMENTED = 501
DEFAULT_RETRY_AFTER_CAP = 120.0


def is_cert_error(error: BaseException) -> bool:
    """Whether error is, or was raised from, a TLS certificate verification failure."""
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLCertVerificationError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def is_permanent_error(error: Exception) -> bool:
    """Whether a transport error will fail the same way on every retry."""
    if isinstance(error, _PERMANENT_TYPES) or is_cert_error(error):
        return True
    message = str(error)
    return any(p.search(message) for p in _PERMANENT_PATTERNS)


def is_retryable_status(status_code: int) -> bool:
    """429, 0 and 5xx except 501 are worth another attempt."""
    return (
        status_code == TOO_MANY_REQUESTS
        or status_code == 0
        or (status_code >= 500 and status_code != NOT_IMPLEMENTED)
    )


def parse_retry_after(response: httpx.Response, cap: float = DEFAULT_RETRY_AFTER_CAP) -> float | None:
    """Delta-seconds Retry-After header, capped. HTTP-date values are ignored."""
    value = response.headers.get("Retry-After", "").strip()
    if not _DELTA_SECONDS_RE.fullmatch(value):
        return None
    return min(float(value), cap)


def classify(
    response: httpx.Response | None,
    error: Exception | None,
    *,
    retry_after_cap: float = DEFAULT_RETRY_AFTER_CAP,
) -> Result:
    """Map one request outcome to a retry Result."""
    if error is not None:
        return Abort(error) if is_permanent_error(error) else Recover(error)
    if response is None:
        raise ValueError("classify needs a response or an error")

    if response.status_code == TOO_MANY_REQUESTS:
        # The server may say when it will accept requests again.
        if (delay := parse_retry_after(response, retry_after_cap)) is not None and delay > 0:
            return RetryAfter(delay)
        return Continue()
    if is_retryable_status(response.status_code):
        return Continue()
    return Finish()


def default_handle_response(
    scope: CancelScope,
    response: httpx.Response | None,
    error: Exception | None,
) -> Result:
    """Default ResponseHandler for the retry transports."""
    return classify(response, error, retry_after_cap=get_settings().http.retry_after_cap)
