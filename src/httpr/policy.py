"""Retry policy value and default substitution.

:class:`RetryPolicy` groups everything the retrying transport needs to decide
whether and when to re-issue a request.  A policy with nothing configured is
the *zero* policy; transports replace it with :func:`default_retry_policy`.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from .retries import (
    Backoff,
    ShouldRetry,
    exponential_backoff,
    never_retry,
    no_backoff,
    standard_should_retry,
)

DEFAULT_MAX_RETRIES = 3
DEFAULT_MIN_DELAY = 0.5
DEFAULT_MAX_DELAY = 5.0
DEFAULT_JITTER = 0.2


@dataclass(frozen=True)
class RetryPolicy:
    """Rules for retrying a request.

    Parameters
    ----------
    should_retry:
        Predicate ``(response, error) -> bool``.  ``None`` in an otherwise
        configured policy means "never retry".
    backoff:
        Delay function ``(min_delay, max_delay, jitter, attempt) -> float``.
        ``None`` in an otherwise configured policy means "no delay".
    max_retries:
        Retries allowed after the initial attempt.  ``0`` means exactly one
        attempt.
    min_delay:
        Delay in seconds before the first retry.
    max_delay:
        Upper cap in seconds on any single delay.
    jitter:
        Fraction of each delay to randomise, ``0 <= jitter < 1``.
    """

    should_retry: ShouldRetry | None = None

    backoff: Backoff | None = None

    max_retries: int = 0

    min_delay: float = 0.0

    max_delay: float = 0.0

    jitter: float = 0.0

    def __post_init__(self) -> None:
        """Validate the numeric fields."""
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.min_delay < 0:
            raise ValueError(f"min_delay must be >= 0, got {self.min_delay}")
        if self.max_delay < self.min_delay:
            raise ValueError(
                f"max_delay must be >= min_delay ({self.min_delay}), got {self.max_delay}"
            )
        if not 0 <= self.jitter < 1:
            raise ValueError(f"jitter must be in [0, 1), got {self.jitter}")

    def is_zero(self) -> bool:
        """Return ``True`` when no field that selects behaviour is set."""
        return (
            self.should_retry is None
            and self.backoff is None
            and self.max_retries == 0
            and self.min_delay == 0
            and self.max_delay == 0
        )

    def resolved(self) -> RetryPolicy:
        """Return the policy a transport actually runs with.

        The zero policy becomes :func:`default_retry_policy`.  Otherwise a
        missing predicate becomes :func:`~httpr.retries.never_retry` and a
        missing backoff becomes :func:`~httpr.retries.no_backoff`.
        """
        if self.is_zero():
            return default_retry_policy()
        return dataclasses.replace(
            self,
            should_retry=self.should_retry or never_retry,
            backoff=self.backoff or no_backoff,
        )


def default_retry_policy() -> RetryPolicy:
    """Return the built-in policy.

    Retries transport errors and statuses 408, 429, 500, 502, 503 and 504 up
    to 3 times with exponential backoff from 0.5 s to 5 s and 20 % jitter.
    """
    return RetryPolicy(
        should_retry=standard_should_retry,
        backoff=exponential_backoff,
        max_retries=DEFAULT_MAX_RETRIES,
        min_delay=DEFAULT_MIN_DELAY,
        max_delay=DEFAULT_MAX_DELAY,
        jitter=DEFAULT_JITTER,
    )


def no_retry_policy() -> RetryPolicy:
    """Return a policy that sends every request exactly once."""
    return RetryPolicy(should_retry=never_retry, backoff=no_backoff)
