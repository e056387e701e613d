"""Request-scoped cancellation for the retry wait.

A :class:`CancelToken` travels with a request in
``request.extensions["cancel_token"]``.  The retrying transports race every
backoff delay against it: cancelling the token (from any thread) or letting
its deadline pass ends the wait immediately.

Usage::

    token = CancelToken(timeout=10.0)
    with httpx.Client(transport=RetryTransport()) as client:
        client.get(url, extensions={CANCEL_TOKEN_EXTENSION: token})

    # elsewhere
    token.cancel()
"""

from __future__ import annotations

import asyncio
import threading
import time
from typing import Callable

import httpx

CANCEL_TOKEN_EXTENSION = "cancel_token"


class CancelToken:
    """Thread-safe cancellation signal with an optional deadline.

    Parameters
    ----------
    timeout:
        Seconds from now after which the token counts as cancelled.
        ``None`` means no deadline.
    """

    __slots__ = ("_callbacks", "_deadline", "_event", "_lock")

    def __init__(self, timeout: float | None = None) -> None:
        if timeout is not None and timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout}")
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._deadline: float | None = (
            time.monotonic() + timeout if timeout is not None else None
        )

    def cancel(self) -> None:
        """Cancel the token and run registered callbacks once."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    @property
    def cancelled(self) -> bool:
        """``True`` once :meth:`cancel` was called (deadline not included)."""
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        """``True`` once the deadline has passed."""
        return self._deadline is not None and time.monotonic() >= self._deadline

    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or ``None`` without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def wait(self, timeout: float) -> bool:
        """Block for up to *timeout* seconds or until the token is done.

        Returns ``True`` if the token is done when the wait ends, or if its
        deadline cut the wait short.
        """
        remaining = self.remaining()
        capped = remaining is not None and remaining <= timeout
        if capped:
            timeout = remaining
        self._event.wait(timeout)
        # A wait cut short by the deadline may wake a hair early.
        return capped or self.done()

    async def wait_async(self, timeout: float) -> bool:
        """Async equivalent of :meth:`wait`.

        The token may be cancelled from another thread; the wake-up is
        handed to the running event loop.
        """
        loop = asyncio.get_running_loop()
        fired: asyncio.Future[None] = loop.create_future()

        def _resolve() -> None:
            if not fired.done():
                fired.set_result(None)

        def _wake() -> None:
            loop.call_soon_threadsafe(_resolve)

        remaining = self.remaining()
        capped = remaining is not None and remaining <= timeout
        if capped:
            timeout = remaining

        self.add_callback(_wake)
        try:
            await asyncio.wait({fired}, timeout=timeout)
        finally:
            self.remove_callback(_wake)
            fired.cancel()
        return capped or self.done()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run *callback* on :meth:`cancel`; immediately if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass


def get_cancel_token(request: httpx.Request) -> CancelToken | None:
    """Return the token attached to *request*, if any."""
    return request.extensions.get(CANCEL_TOKEN_EXTENSION)
