"""httpr: retrying transports for httpx.

Public re-exports
-----------------

* **Transports:** :class:`RetryTransport`, :class:`AsyncRetryTransport`
* **Options:** :func:`with_retry_policy`, :func:`with_transport`,
  :func:`with_no_retry`, :func:`with_metrics`
* **Policy:** :class:`RetryPolicy`, :func:`default_retry_policy`,
  predicates and backoff functions
* **Cancellation:** :class:`CancelToken`
* **Errors:** Every :class:`HttprError` subclass and :class:`ErrorCode`

Usage::

    import httpx
    from httpr import RetryTransport

    with httpx.Client(transport=RetryTransport()) as client:
        response = client.get("https://example.com")
"""

from __future__ import annotations

# ── Cancellation ───────────────────────────────────────────────────────
from httpr.cancel import CANCEL_TOKEN_EXTENSION, CancelToken

# ── Errors ─────────────────────────────────────────────────────────────
from httpr.errors import (
    BodyNotReplayableError,
    ErrorCode,
    HttprError,
    RequestReplayError,
    ResponseDrainError,
    RetryCancelledError,
    RetryDeadlineExceededError,
)

# ── Request / response lifecycle ───────────────────────────────────────
from httpr.lifecycle import (
    BODY_FACTORY_EXTENSION,
    adrain_response,
    drain_response,
    replay_request,
)

# ── Observability ──────────────────────────────────────────────────
from httpr.observability import MetricsHook, NoopMetricsHook

# ── Options ────────────────────────────────────────────────────────────
from httpr.options import (
    Option,
    with_metrics,
    with_no_retry,
    with_retry_policy,
    with_transport,
)

# ── Policy ─────────────────────────────────────────────────────────────
from httpr.policy import RetryPolicy, default_retry_policy, no_retry_policy
from httpr.retries import (
    RETRYABLE_STATUSES,
    exponential_backoff,
    never_retry,
    no_backoff,
    standard_should_retry,
)

# ── Transports ─────────────────────────────────────────────────────────
from httpr.transport import AsyncRetryTransport, RetryTransport

__all__ = [
    # Transports
    "RetryTransport",
    "AsyncRetryTransport",
    # Options
    "Option",
    "with_retry_policy",
    "with_transport",
    "with_no_retry",
    "with_metrics",
    # Policy
    "RetryPolicy",
    "default_retry_policy",
    "no_retry_policy",
    "RETRYABLE_STATUSES",
    "standard_should_retry",
    "never_retry",
    "exponential_backoff",
    "no_backoff",
    # Observability
    "MetricsHook",
    "NoopMetricsHook",
    # Cancellation
    "CancelToken",
    "CANCEL_TOKEN_EXTENSION",
    # Lifecycle
    "BODY_FACTORY_EXTENSION",
    "replay_request",
    "drain_response",
    "adrain_response",
    # Errors
    "HttprError",
    "ErrorCode",
    "RetryCancelledError",
    "RetryDeadlineExceededError",
    "ResponseDrainError",
    "RequestReplayError",
    "BodyNotReplayableError",
]
