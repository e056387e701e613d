"""Metrics hook protocol and no-op default implementation.

The retrying transports emit counters and timings for every attempt, retry
and cancelled wait.  By default a :class:`NoopMetricsHook` is used so there
is zero overhead; pass any object satisfying :class:`MetricsHook` through
:func:`httpr.options.with_metrics` to route them to a real backend.

Emitted metric names:

* ``httpr.attempts_total``   -- counter, tag ``outcome``
* ``httpr.retries_total``    -- counter, tag ``reason``
* ``httpr.retry_delay_ms``   -- timing
* ``httpr.cancelled_total``  -- counter
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    All methods accept an optional *tags* dict whose keys and values are
    strings.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...


class NoopMetricsHook:
    """Metrics implementation that silently discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass
