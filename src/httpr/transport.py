"""Sync and async retrying transports.

Each transport wraps another ``httpx`` transport and runs the attempt loop:

1. Send the request through the wrapped transport.
2. Ask the policy predicate whether the outcome is retryable.
3. If not, or if ``max_retries`` is used up -- return the response (or
   re-raise the transport error) unchanged.
4. Compute the backoff delay and wait, racing the request's cancel token.
5. Drain and close the discarded response, rebuild the request body.
6. Loop.

The response of an attempt that is being discarded is released on every
exit path, including cancellation.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx

from httpr.cancel import CancelToken, get_cancel_token
from httpr.errors import (
    RequestReplayError,
    ResponseDrainError,
    RetryCancelledError,
    RetryDeadlineExceededError,
)
from httpr.lifecycle import adrain_response, drain_response, replay_request
from httpr.observability import MetricsHook, NoopMetricsHook, get_logger
from httpr.options import Option
from httpr.policy import RetryPolicy

log = get_logger("httpr.transport")


# ---------------------------------------------------------------------------
# Shared helpers (used by both sync and async transports)
# ---------------------------------------------------------------------------

def _outcome(response: httpx.Response | None, error: BaseException | None) -> str:
    if error is not None:
        return "error"
    if response is None:
        return "none"
    return str(response.status_code)


def _log_retry(
    metrics: MetricsHook,
    request: httpx.Request,
    response: httpx.Response | None,
    error: BaseException | None,
    attempt: int,
    delay: float,
) -> None:
    fields: dict[str, Any] = {
        "op": "retry",
        "method": request.method,
        "url": str(request.url),
        "attempt": attempt,
        "delay": delay,
    }
    if error is not None:
        fields["error"] = str(error)
        reason = "transport_error"
    else:
        fields["status_code"] = response.status_code if response is not None else None
        reason = "status"
    log.warning("Retrying request", extra={"extra_fields": fields})
    metrics.increment("httpr.retries_total", tags={"reason": reason})
    metrics.timing("httpr.retry_delay_ms", delay * 1000)


def _cancelled(
    metrics: MetricsHook,
    request: httpx.Request,
    token: CancelToken,
    attempt: int,
    delay: float,
) -> RetryCancelledError:
    """Build the error for a wait ended by *token*."""
    context = {"attempt": attempt, "delay": delay}
    metrics.increment("httpr.cancelled_total")
    log.warning(
        "Retry wait cancelled",
        extra={
            "extra_fields": {
                "op": "retry",
                "method": request.method,
                "url": str(request.url),
                **context,
            }
        },
    )
    if not token.cancelled:
        return RetryDeadlineExceededError(
            message=f"Deadline exceeded waiting to retry {request.method} {request.url}",
            context=context,
        )
    return RetryCancelledError(
        message=f"Cancelled while waiting to retry {request.method} {request.url}",
        context=context,
    )


def _log_exhausted(request: httpx.Request, attempts: int) -> None:
    log.debug(
        "Retries exhausted",
        extra={
            "extra_fields": {
                "op": "retry",
                "method": request.method,
                "url": str(request.url),
                "attempts": attempts,
            }
        },
    )


def _log_resource_error(
    message: str,
    request: httpx.Request,
    exc: ResponseDrainError | RequestReplayError,
    attempt: int,
) -> None:
    exc.context.setdefault("attempt", attempt)
    log.error(
        message,
        extra={
            "extra_fields": {
                "op": "retry",
                "method": request.method,
                "url": str(request.url),
                "attempt": attempt,
                "code": exc.code,
                "error": exc.message,
            }
        },
    )


# ---------------------------------------------------------------------------
# Sync transport
# ---------------------------------------------------------------------------

class RetryTransport(httpx.BaseTransport):
    """Transport that retries transient failures of a wrapped transport.

    With no options the wrapped transport is ``httpx.HTTPTransport()`` and
    the policy is :func:`~httpr.policy.default_retry_policy`: up to 3
    retries with exponential backoff (0.5 s to 5 s, 20 % jitter) on
    transport errors and statuses 408, 429, 500, 502, 503 and 504.

    Parameters
    ----------
    *options:
        Options from :mod:`httpr.options`, applied in order.

    The instance keeps no per-request state and may be shared by any number
    of threads.
    """

    def __init__(self, *options: Option) -> None:
        self._transport: httpx.BaseTransport | None = None
        self._policy = RetryPolicy()
        self._metrics: MetricsHook = NoopMetricsHook()
        self.set(*options)

    def set(self, *options: Option) -> None:
        """Apply *options*.  Not safe while requests are in flight."""
        for option in options:
            option(self)
        if self._transport is None:
            self._transport = httpx.HTTPTransport()
        self._policy = self._policy.resolved()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def transport(self) -> httpx.BaseTransport:
        return self._transport

    # -- public API --------------------------------------------------------

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Send *request*, retrying according to the policy.

        Returns
        -------
        httpx.Response
            The response of the last attempt, whatever its status.

        Raises
        ------
        httpx.TransportError
            The error of the last attempt, unchanged.
        RetryCancelledError
            If the request's cancel token fired during a backoff wait.
        ResponseDrainError
            If a discarded response could not be drained.
        RequestReplayError
            If the request could not be rebuilt for the next attempt.
        """
        policy = self._policy
        token = get_cancel_token(request)
        retries = 0

        while True:
            response: httpx.Response | None = None
            error: httpx.TransportError | None = None
            try:
                response = self._transport.handle_request(request)
            except httpx.TransportError as exc:
                error = exc

            try:
                self._metrics.increment(
                    "httpr.attempts_total", tags={"outcome": _outcome(response, error)},
                )
                retry = policy.should_retry(response, error)
                if retry and retries < policy.max_retries:
                    delay = policy.backoff(
                        policy.min_delay, policy.max_delay, policy.jitter, retries,
                    )
                    _log_retry(self._metrics, request, response, error, retries + 1, delay)
                    if token is None:
                        time.sleep(delay)
                    elif token.wait(delay):
                        raise _cancelled(self._metrics, request, token, retries + 1, delay)
                elif retry:
                    _log_exhausted(request, retries + 1)
                    retry = False
            except BaseException:
                if response is not None:
                    response.close()
                raise

            if not retry:
                if error is not None:
                    raise error
                return response

            try:
                drain_response(response)
            except ResponseDrainError as exc:
                _log_resource_error("Response drain failed", request, exc, retries + 1)
                raise
            try:
                request = replay_request(request)
            except RequestReplayError as exc:
                _log_resource_error("Request replay failed", request, exc, retries + 1)
                raise
            retries += 1

    def close(self) -> None:
        """Close the wrapped transport."""
        self._transport.close()


# ---------------------------------------------------------------------------
# Async transport
# ---------------------------------------------------------------------------

class AsyncRetryTransport(httpx.AsyncBaseTransport):
    """Asynchronous counterpart of :class:`RetryTransport`.

    Wraps ``httpx.AsyncHTTPTransport()`` by default.  Besides the request's
    cancel token, cancelling the calling task interrupts a backoff wait; the
    pending response is closed before ``asyncio.CancelledError`` propagates.
    """

    def __init__(self, *options: Option) -> None:
        self._transport: httpx.AsyncBaseTransport | None = None
        self._policy = RetryPolicy()
        self._metrics: MetricsHook = NoopMetricsHook()
        self.set(*options)

    def set(self, *options: Option) -> None:
        """Apply *options*.  Not safe while requests are in flight."""
        for option in options:
            option(self)
        if self._transport is None:
            self._transport = httpx.AsyncHTTPTransport()
        self._policy = self._policy.resolved()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def transport(self) -> httpx.AsyncBaseTransport:
        return self._transport

    # -- public API --------------------------------------------------------

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Send *request*, retrying according to the policy (async).

        See :meth:`RetryTransport.handle_request`; the semantics are
        identical.
        """
        policy = self._policy
        token = get_cancel_token(request)
        retries = 0

        while True:
            response: httpx.Response | None = None
            error: httpx.TransportError | None = None
            try:
                response = await self._transport.handle_async_request(request)
            except httpx.TransportError as exc:
                error = exc

            try:
                self._metrics.increment(
                    "httpr.attempts_total", tags={"outcome": _outcome(response, error)},
                )
                retry = policy.should_retry(response, error)
                if retry and retries < policy.max_retries:
                    delay = policy.backoff(
                        policy.min_delay, policy.max_delay, policy.jitter, retries,
                    )
                    _log_retry(self._metrics, request, response, error, retries + 1, delay)
                    if token is None:
                        await asyncio.sleep(delay)
                    elif await token.wait_async(delay):
                        raise _cancelled(self._metrics, request, token, retries + 1, delay)
                elif retry:
                    _log_exhausted(request, retries + 1)
                    retry = False
            except BaseException:
                if response is not None:
                    await response.aclose()
                raise

            if not retry:
                if error is not None:
                    raise error
                return response

            try:
                await adrain_response(response)
            except ResponseDrainError as exc:
                _log_resource_error("Response drain failed", request, exc, retries + 1)
                raise
            try:
                request = replay_request(request)
            except RequestReplayError as exc:
                _log_resource_error("Request replay failed", request, exc, retries + 1)
                raise
            retries += 1

    async def aclose(self) -> None:
        """Close the wrapped transport."""
        await self._transport.aclose()
