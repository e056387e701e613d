"""Configuration options for the retrying transports.

Options are plain callables applied in order by
:class:`~httpr.transport.RetryTransport` and
:class:`~httpr.transport.AsyncRetryTransport` (at construction and through
``set``).  A later option overrides an earlier one for the same field.

Usage::

    transport = RetryTransport(
        with_retry_policy(RetryPolicy(max_retries=5, min_delay=1.0, max_delay=10.0,
                                      should_retry=standard_should_retry,
                                      backoff=exponential_backoff)),
        with_transport(httpx.HTTPTransport(retries=0)),
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Union

import httpx

from httpr.observability import MetricsHook
from httpr.policy import RetryPolicy, no_retry_policy

if TYPE_CHECKING:
    from httpr.transport import AsyncRetryTransport, RetryTransport

Option = Callable[[Union["RetryTransport", "AsyncRetryTransport"]], None]


def with_retry_policy(policy: RetryPolicy) -> Option:
    """Use *policy* for retries.  A zero policy leaves the current one."""

    def option(target: Any) -> None:
        if not policy.is_zero():
            target._policy = policy

    return option


def with_transport(transport: httpx.BaseTransport | httpx.AsyncBaseTransport | None) -> Option:
    """Wrap *transport* instead of the default ``httpx`` transport."""

    def option(target: Any) -> None:
        if transport is not None:
            target._transport = transport

    return option


def with_no_retry() -> Option:
    """Send every request exactly once."""

    def option(target: Any) -> None:
        target._policy = no_retry_policy()

    return option


def with_metrics(hook: MetricsHook) -> Option:
    """Emit retry metrics to *hook*."""

    def option(target: Any) -> None:
        target._metrics = hook

    return option
