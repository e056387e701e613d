"""Shared test fixtures for the httpr test suite."""

from __future__ import annotations

import pytest

from httpr.policy import RetryPolicy
from httpr.retries import exponential_backoff, standard_should_retry


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Standard predicate and backoff with millisecond delays and no jitter."""
    return RetryPolicy(
        should_retry=standard_should_retry,
        backoff=exponential_backoff,
        max_retries=3,
        min_delay=0.001,
        max_delay=0.005,
    )


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace ``time.sleep`` in the sync transport and record the delays."""
    recorded: list[float] = []
    monkeypatch.setattr("httpr.transport.time.sleep", recorded.append)
    return recorded
