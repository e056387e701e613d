"""Retry decision logic and exponential backoff computation.

This module provides the pure functions a :class:`~httpr.policy.RetryPolicy`
is built from:

* :func:`standard_should_retry` -- decide whether an attempt is retryable.
* :func:`never_retry` -- predicate that always declines.
* :func:`exponential_backoff` -- delay before the next attempt.
* :func:`no_backoff` -- zero delay.

None of them keep state between calls, so a single policy can be shared by
every request flowing through a transport.
"""

from __future__ import annotations

import math
import random
from typing import Callable, Optional

import httpx

# HTTP status codes that are safe to retry.
RETRYABLE_STATUSES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})

ShouldRetry = Callable[[Optional[httpx.Response], Optional[BaseException]], bool]
"""``(response, error) -> bool``; exactly one of the two is normally set."""

Backoff = Callable[[float, float, float, int], float]
"""``(min_delay, max_delay, jitter, attempt) -> seconds``."""


def standard_should_retry(
    response: httpx.Response | None,
    error: BaseException | None,
) -> bool:
    """Decide whether an attempt outcome warrants another attempt.

    Parameters
    ----------
    response:
        The response of the attempt, or ``None`` if the attempt failed
        before a response was received.
    error:
        The transport error raised by the attempt, or ``None``.

    Returns
    -------
    bool
        ``True`` for any transport error, a missing or status-less response,
        and the statuses in :data:`RETRYABLE_STATUSES`; ``False`` otherwise.
    """
    # Connection-level failures are presumed transient.
    if error is not None:
        return True

    if response is None or not response.status_code:
        return True

    return response.status_code in RETRYABLE_STATUSES


def never_retry(
    response: httpx.Response | None,
    error: BaseException | None,
) -> bool:
    """Predicate that never asks for a retry."""
    return False


def exponential_backoff(
    min_delay: float,
    max_delay: float,
    jitter: float,
    attempt: int,
) -> float:
    """Compute the delay before the next retry attempt.

    The delay follows ``min_delay * 2^attempt`` capped at *max_delay*.  When
    *jitter* is positive a uniform offset in ``[-jitter*d, +jitter*d)`` is
    added to the capped delay ``d`` and the result is clamped back into
    ``[0, max_delay]``.

    Parameters
    ----------
    min_delay:
        Delay in seconds before the first retry.
    max_delay:
        Upper cap in seconds on any computed delay.
    jitter:
        Fraction of the delay to randomise, ``0 <= jitter < 1``.
    attempt:
        Number of retries already performed (0 before the first retry).

    Returns
    -------
    float
        Delay in seconds.
    """
    try:
        delay = math.ldexp(min_delay, attempt)
    except OverflowError:
        delay = max_delay
    delay = min(delay, max_delay)

    if jitter > 0:
        spread = delay * jitter
        delay += spread * (2.0 * random.random() - 1.0)
        delay = max(0.0, min(delay, max_delay))

    return delay


def no_backoff(
    min_delay: float,
    max_delay: float,
    jitter: float,
    attempt: int,
) -> float:
    """Backoff that never waits."""
    return 0.0
